"""Geographic calculations - Pure functions.

Rectangle and area-circle matching used by the in-memory event index.
Longitude bounds may extend past +/-180 for searches that cross the date line.
All functions are pure with no side effects.
"""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class BoundingBox:
    """Geographic bounding box; any side may be open (None).

    Attributes:
        min_latitude: Southern boundary
        max_latitude: Northern boundary
        min_longitude: Western boundary, may be < -180
        max_longitude: Eastern boundary, may be > 180
    """
    min_latitude: float | None = None
    max_latitude: float | None = None
    min_longitude: float | None = None
    max_longitude: float | None = None

    def contains(self, latitude: float, longitude: float) -> bool:
        """Check if a point is within this bounding box."""
        if self.min_latitude is not None and latitude < self.min_latitude:
            return False
        if self.max_latitude is not None and latitude > self.max_latitude:
            return False
        return longitude_in_range(longitude, self.min_longitude, self.max_longitude)


def longitude_in_range(
    longitude: float,
    min_longitude: float | None,
    max_longitude: float | None,
) -> bool:
    """Check a longitude against bounds that may cross the date line.

    Pure function. The point also matches when shifted by a full turn, so
    minlongitude=170, maxlongitude=190 includes -175. A single bound is
    compared against the longitude as given.
    """
    if min_longitude is None or max_longitude is None:
        candidates: tuple[float, ...] = (longitude,)
    else:
        candidates = (longitude, longitude + 360, longitude - 360)

    for candidate in candidates:
        if min_longitude is not None and candidate < min_longitude:
            continue
        if max_longitude is not None and candidate > max_longitude:
            continue
        return True
    return False


def angular_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Great-circle distance between two points in degrees.

    Pure function (Haversine formula).
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    # clamp rounding error for antipodal points
    a = min(1.0, max(0.0, a))
    return math.degrees(2 * math.atan2(math.sqrt(a), math.sqrt(1 - a)))


def is_within_radius(
    latitude: float,
    longitude: float,
    center_lat: float,
    center_lon: float,
    max_radius: float,
    min_radius: float | None = None,
) -> bool:
    """Check if a point lies in the ring [min_radius, max_radius] degrees.

    Pure function.
    """
    distance = angular_distance(latitude, longitude, center_lat, center_lon)
    if min_radius is not None and distance < min_radius:
        return False
    return distance <= max_radius
