"""Event data models and parsing - Pure functions.

This module handles parsing GeoJSON features (USGS summary and detail
layout) into typed Event objects. All functions are pure with no side effects.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class ProductContent:
    """One file attached to a product.

    Attributes:
        content_type: MIME type of the content
        last_modified: Modification time (epoch milliseconds)
        length: Size in bytes
        url: Where the content can be downloaded
    """
    content_type: str = ""
    last_modified: int | None = None
    length: int | None = None
    url: str = ""


@dataclass(frozen=True)
class Product:
    """A product contributed to an event (origin, shakemap, dyfi, ...).

    Attributes:
        id: Product identifier
        type: Product type (e.g., 'origin', 'shakemap')
        code: Product code
        source: Contributing network
        update_time: Product update time (epoch milliseconds)
        status: Product status (e.g., 'UPDATE', 'DELETE')
        properties: Free-form product properties
        preferred_weight: Preference weight among products of the same type
        contents: Attached files keyed by path
    """
    id: str
    type: str
    code: str
    source: str
    update_time: int | None = None
    status: str = "UPDATE"
    properties: dict[str, str] = field(default_factory=dict)
    preferred_weight: int = 0
    contents: dict[str, ProductContent] = field(default_factory=dict)


@dataclass(frozen=True)
class Event:
    """Immutable seismic event record.

    Attributes:
        id: Preferred event ID
        time: Origin time (epoch milliseconds)
        latitude: Epicenter latitude
        longitude: Epicenter longitude
        depth: Depth in kilometers
        magnitude: Preferred magnitude
        mag_type: Magnitude type (e.g., 'ml', 'mww')
        place: Human-readable location description
        updated: Last update time (epoch milliseconds)
        net: Preferred catalog (network) code
        code: Event code within the catalog
        ids: All event IDs associated with the event
        sources: All contributing networks
        types: All product types attached to the event
        event_type: Event type (e.g., 'earthquake', 'quarry blast')
        status: Review status ('automatic' or 'reviewed')
        felt: Number of felt reports
        cdi: Maximum reported intensity
        mmi: Maximum estimated instrumental intensity
        alert: PAGER alert level
        sig: Significance
        gap: Azimuthal gap in degrees
        tsunami: Whether a tsunami flag was set
        properties: Any other summary properties, passed through to output
        products: Products (detail lookups only)
    """
    id: str
    time: int
    latitude: float
    longitude: float
    depth: float | None = None
    magnitude: float | None = None
    mag_type: str | None = None
    place: str = ""
    updated: int | None = None
    net: str | None = None
    code: str | None = None
    ids: tuple[str, ...] = ()
    sources: tuple[str, ...] = ()
    types: tuple[str, ...] = ()
    event_type: str = "earthquake"
    status: str = "automatic"
    felt: int | None = None
    cdi: float | None = None
    mmi: float | None = None
    alert: str | None = None
    sig: int | None = None
    gap: float | None = None
    tsunami: bool = False
    properties: dict[str, Any] = field(default_factory=dict)
    products: tuple[Product, ...] = ()

    @property
    def origin_time(self) -> datetime:
        """Origin time as an aware UTC datetime."""
        return datetime_from_ms(self.time)


def datetime_from_ms(value: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def ms_from_datetime(value: datetime) -> int:
    """Convert a datetime to epoch milliseconds (naive values are UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(round(value.timestamp() * 1000))


def _split_list(value: Any) -> tuple[str, ...]:
    """Split USGS ',a,b,' style list properties."""
    if not value:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value if v)
    return tuple(v for v in str(value).split(",") if v)


def _optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


# Summary properties mapped onto typed Event fields
_TYPED_PROPERTIES = {
    "mag", "magType", "place", "time", "updated", "net", "code", "ids",
    "sources", "types", "type", "status", "felt", "cdi", "mmi", "alert",
    "sig", "gap", "tsunami", "products",
}


def parse_product(data: dict[str, Any]) -> Product:
    """Parse one product from the GeoJSON detail ``products`` block."""
    contents = {
        path: ProductContent(
            content_type=info.get("contentType", ""),
            last_modified=_optional_int(info.get("lastModified")),
            length=_optional_int(info.get("length")),
            url=info.get("url", ""),
        )
        for path, info in (data.get("contents") or {}).items()
    }
    return Product(
        id=data.get("id", ""),
        type=data.get("type", ""),
        code=data.get("code", ""),
        source=data.get("source", ""),
        update_time=_optional_int(data.get("updateTime")),
        status=data.get("status", "UPDATE"),
        properties={str(k): str(v) for k, v in (data.get("properties") or {}).items()},
        preferred_weight=int(data.get("preferredWeight") or 0),
        contents=contents,
    )


def parse_event(feature: dict[str, Any]) -> Event | None:
    """Parse a single GeoJSON feature into an Event.

    Pure function: takes raw dict, returns typed Event or None if invalid.

    Args:
        feature: GeoJSON feature dict (summary or detail layout)

    Returns:
        Event object or None if parsing fails
    """
    try:
        props = feature.get("properties") or {}
        geometry = feature.get("geometry") or {}
        coords = geometry.get("coordinates") or []

        if len(coords) < 2:
            return None

        time_ms = props.get("time")
        if time_ms is None:
            return None

        products = tuple(
            parse_product(product)
            for product_list in (props.get("products") or {}).values()
            for product in product_list
        )

        return Event(
            id=feature.get("id", ""),
            time=int(time_ms),
            longitude=float(coords[0]),
            latitude=float(coords[1]),
            depth=_optional_float(coords[2]) if len(coords) > 2 else None,
            magnitude=_optional_float(props.get("mag")),
            mag_type=props.get("magType"),
            place=props.get("place") or "",
            updated=_optional_int(props.get("updated")),
            net=props.get("net"),
            code=props.get("code"),
            ids=_split_list(props.get("ids")),
            sources=_split_list(props.get("sources")),
            types=_split_list(props.get("types")),
            event_type=props.get("type") or "earthquake",
            status=props.get("status") or "automatic",
            felt=_optional_int(props.get("felt")),
            cdi=_optional_float(props.get("cdi")),
            mmi=_optional_float(props.get("mmi")),
            alert=props.get("alert"),
            sig=_optional_int(props.get("sig")),
            gap=_optional_float(props.get("gap")),
            tsunami=bool(props.get("tsunami", 0)),
            properties={
                k: v for k, v in props.items() if k not in _TYPED_PROPERTIES
            },
            products=products,
        )
    except (KeyError, TypeError, ValueError, AttributeError):
        return None


def parse_events(geojson: dict[str, Any]) -> list[Event]:
    """Parse a GeoJSON FeatureCollection into a list of Events.

    Invalid features are skipped; input order is preserved.
    """
    events = []
    for feature in geojson.get("features", []):
        event = parse_event(feature)
        if event is not None:
            events.append(event)
    return events
