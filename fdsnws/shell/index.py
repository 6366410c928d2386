"""Event index contract.

The index is the storage/search collaborator of the web service. Searches
are exposed as a lazy, finite, non-restartable iterator that is only valid
inside the ``events()`` context, so any cursor or connection behind it is
released on every exit path.
"""

from contextlib import AbstractContextManager
from typing import Iterator

from fdsnws.core.event import Event
from fdsnws.core.query import Query


class EventIndex:
    """Base class for event index implementations."""

    def get_event_count(self, query: Query) -> int:
        """Number of events matching the query, ignoring limit and offset."""
        raise NotImplementedError

    def events(self, query: Query) -> AbstractContextManager[Iterator[Event]]:
        """Open a lazy sequence over matching events (ordered and paged)."""
        raise NotImplementedError

    def get_event(self, eventid: str) -> Event:
        """Resolve one event, including its products.

        Raises:
            EventNotFound: If no event has this id
        """
        raise NotImplementedError

    def get_catalogs(self) -> list[str]:
        raise NotImplementedError

    def get_contributors(self) -> list[str]:
        raise NotImplementedError
