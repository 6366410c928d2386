"""In-memory event index - Imperative Shell.

Holds a catalog of events loaded from a GeoJSON file and answers searches
with the pure matching functions from the core.
"""

import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator

from fdsnws.core.errors import EventNotFound
from fdsnws.core.event import Event, parse_events
from fdsnws.core.matching import matches, paginate, sort_events
from fdsnws.core.query import Query
from fdsnws.shell.index import EventIndex


logger = logging.getLogger(__name__)


def load_events_file(path: str | Path) -> list[Event]:
    """Load events from a GeoJSON FeatureCollection file.

    This function performs file I/O.

    Raises:
        FileNotFoundError: If the file doesn't exist
        json.JSONDecodeError: If the file is not valid JSON
    """
    path = Path(path)
    logger.info("Loading events from %s", path)

    with open(path, "r") as f:
        data = json.load(f)

    events = parse_events(data)
    skipped = len(data.get("features", [])) - len(events)
    if skipped:
        logger.warning("Skipped %d unparseable features in %s", skipped, path)

    logger.info("Loaded %d events", len(events))
    return events


class MemoryEventIndex(EventIndex):
    """Event index over an in-memory list of events."""

    def __init__(self, events: Iterable[Event] = ()) -> None:
        self._events = tuple(events)

    @classmethod
    def from_file(cls, path: str | Path) -> "MemoryEventIndex":
        return cls(load_events_file(path))

    def _matching(self, query: Query) -> Iterator[Event]:
        return (e for e in self._events if matches(e, query))

    def get_event_count(self, query: Query) -> int:
        return sum(1 for _ in self._matching(query))

    @contextmanager
    def events(self, query: Query) -> Iterator[Iterator[Event]]:
        ordered = sort_events(self._matching(query), query.orderby)
        yield paginate(ordered, query.offset, query.limit)

    def get_event(self, eventid: str) -> Event:
        for event in self._events:
            if event.id == eventid or eventid in event.ids:
                return event
        raise EventNotFound(eventid)

    def get_catalogs(self) -> list[str]:
        return sorted({e.net for e in self._events if e.net})

    def get_contributors(self) -> list[str]:
        return sorted({source for e in self._events for source in e.sources})
