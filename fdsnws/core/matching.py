"""Event filtering and ordering - Pure functions.

Evaluates a validated Query against Event records. Used by event indexes
that search in memory.
"""

from itertools import islice
from typing import Iterable, Iterator

from fdsnws.core.event import Event
from fdsnws.core.geo import BoundingBox, is_within_radius
from fdsnws.core.query import Query


def _in_range(value: float | None, low: float | None, high: float | None) -> bool:
    """Inclusive range check; a missing value only passes an open range."""
    if low is None and high is None:
        return True
    if value is None:
        return False
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


def _split_values(value: str) -> set[str]:
    return {v.strip() for v in value.split(",") if v.strip()}


def matches(event: Event, query: Query) -> bool:
    """Check whether an event satisfies every constraint of a query.

    Pure function. Paging and ordering are not applied here.
    """
    if query.eventid is not None:
        if event.id != query.eventid and query.eventid not in event.ids:
            return False

    if not _in_range(event.time, query.starttime, query.endtime):
        return False

    if query.updatedafter is not None:
        if (event.updated or event.time) < query.updatedafter:
            return False

    bounds = BoundingBox(
        min_latitude=query.minlatitude,
        max_latitude=query.maxlatitude,
        min_longitude=query.minlongitude,
        max_longitude=query.maxlongitude,
    )
    if not bounds.contains(event.latitude, event.longitude):
        return False

    if query.is_circle and not is_within_radius(
        event.latitude,
        event.longitude,
        query.latitude,
        query.longitude,
        query.maxradius,
        query.minradius,
    ):
        return False

    if not _in_range(event.depth, query.mindepth, query.maxdepth):
        return False
    if not _in_range(event.magnitude, query.minmagnitude, query.maxmagnitude):
        return False

    if query.magnitudetype is not None:
        if (event.mag_type or "").lower() != query.magnitudetype.lower():
            return False

    if query.catalog is not None and event.net != query.catalog:
        return False

    if query.contributor is not None and query.contributor not in event.sources:
        return False

    if query.eventtype is not None and event.event_type not in _split_values(query.eventtype):
        return False

    if query.reviewstatus is not None and event.status != query.reviewstatus:
        return False

    if not _in_range(event.mmi, query.minmmi, query.maxmmi):
        return False
    if not _in_range(event.cdi, query.mincdi, query.maxcdi):
        return False
    if not _in_range(event.felt, query.minfelt, None):
        return False
    if query.alertlevel is not None and event.alert != query.alertlevel:
        return False
    if not _in_range(event.gap, query.mingap, query.maxgap):
        return False
    if not _in_range(event.sig, query.minsig, query.maxsig):
        return False

    if query.producttype is not None:
        product_types = set(event.types) | {p.type for p in event.products}
        if query.producttype not in product_types:
            return False

    return True


def sort_events(events: Iterable[Event], orderby: str | None) -> list[Event]:
    """Order events; newest first by default.

    Events without a magnitude sort last for magnitude orderings.
    """
    if orderby == "time-asc":
        return sorted(events, key=lambda e: e.time)
    if orderby == "magnitude":
        return sorted(
            events,
            key=lambda e: (e.magnitude is None, -(e.magnitude or 0.0), -e.time),
        )
    if orderby == "magnitude-asc":
        return sorted(
            events,
            key=lambda e: (e.magnitude is None, e.magnitude or 0.0, e.time),
        )
    return sorted(events, key=lambda e: e.time, reverse=True)


def paginate(events: Iterable[Event], offset: int | None, limit: int | None) -> Iterator[Event]:
    """Apply a 1-based offset and an optional limit lazily."""
    start = (offset or 1) - 1
    stop = None if limit is None else start + limit
    return islice(events, start, stop)
