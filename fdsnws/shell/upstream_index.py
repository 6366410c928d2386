"""Upstream FDSN event index - Imperative Shell.

This module answers searches by calling another FDSN event web service
(e.g. the USGS ComCat service) over HTTP. All I/O is contained here;
parsing is done by the core module.
"""

import dataclasses
import logging
import xml.etree.ElementTree as ET
from contextlib import contextmanager
from typing import Any, Iterator

import requests

from fdsnws.core.errors import EventNotFound, IndexUnavailable
from fdsnws.core.event import Event, parse_event, parse_events
from fdsnws.core.feeds import iso_time
from fdsnws.core.query import Query
from fdsnws.shell.index import EventIndex


logger = logging.getLogger(__name__)


# USGS FDSN Event Web Service base URL
USGS_FDSN_BASE = "https://earthquake.usgs.gov/fdsnws/event/1"

# Default timeout for API requests (seconds)
DEFAULT_TIMEOUT = 30

DEFAULT_PAGE_SIZE = 1000

# Query fields that only affect this service's output, never the search
_OUTPUT_FIELDS = {
    "format", "callback", "limit", "offset", "orderby", "kmlcolorby",
    "kmlanimated", "includeallorigins", "includeallmagnitudes",
    "includearrivals", "result_count",
}

_TIME_FIELDS = {"starttime", "endtime", "updatedafter"}


def _format_value(name: str, value: Any) -> str:
    if name in _TIME_FIELDS:
        return iso_time(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _xml_list(text: str, tag: str) -> list[str]:
    """Extract the text of every <tag> element, ignoring namespaces."""
    root = ET.fromstring(text)
    return [
        (element.text or "").strip()
        for element in root.iter()
        if element.tag.rsplit("}", 1)[-1] == tag and element.text
    ]


class UpstreamEventIndex(EventIndex):
    """Event index backed by a remote FDSN event service.

    Searches are paged with limit/offset so only one page of events is held
    in memory at a time.
    """

    def __init__(
        self,
        base_url: str = USGS_FDSN_BASE,
        page_size: int = DEFAULT_PAGE_SIZE,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize upstream index.

        Args:
            base_url: Upstream service base URL (without /query)
            page_size: Events requested per page
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size
        self.timeout = timeout

    def build_params(self, query: Query) -> dict[str, str]:
        """Build upstream search parameters for a query.

        Args:
            query: Validated query

        Returns:
            Dict of URL query parameters (search constraints only)
        """
        params: dict[str, str] = {}
        for f in dataclasses.fields(query):
            if f.name in _OUTPUT_FIELDS:
                continue
            value = getattr(query, f.name)
            if value is not None:
                params[f.name] = _format_value(f.name, value)
        return params

    def _get(
        self,
        session: requests.Session,
        method: str,
        params: dict[str, str],
        missing_ok: bool = False,
    ) -> requests.Response:
        """Perform one upstream request.

        Raises:
            IndexUnavailable: If the request fails or returns an error status
                (404 is returned to the caller when missing_ok is set)
        """
        url = f"{self.base_url}/{method}"
        try:
            response = session.get(url, params=params, timeout=self.timeout)
            if not (missing_ok and response.status_code == 404):
                response.raise_for_status()
        except requests.RequestException as e:
            logger.error("Upstream request to %s failed: %s", url, e)
            raise IndexUnavailable(f"Upstream event service unavailable: {e}") from e
        return response

    def get_event_count(self, query: Query) -> int:
        params = self.build_params(query)
        params["format"] = "geojson"

        logger.info("Counting upstream events", extra={"params": params})

        with requests.Session() as session:
            response = self._get(session, "count", params, missing_ok=True)

        # unknown eventid
        if response.status_code in (204, 404):
            return 0

        count = int(response.json().get("count", 0))
        logger.info("Upstream reports %d matching events", count)
        return count

    @contextmanager
    def events(self, query: Query) -> Iterator[Iterator[Event]]:
        session = requests.Session()
        try:
            yield self._iter_pages(session, query)
        finally:
            session.close()

    def _iter_pages(self, session: requests.Session, query: Query) -> Iterator[Event]:
        params = self.build_params(query)
        params["format"] = "geojson"
        params["orderby"] = query.orderby or "time"

        offset = query.offset or 1
        remaining = query.limit

        while remaining is None or remaining > 0:
            page_limit = self.page_size if remaining is None else min(self.page_size, remaining)
            params["offset"] = str(offset)
            params["limit"] = str(page_limit)

            response = self._get(session, "query", params)
            if response.status_code == 204:
                return

            data = response.json()
            # eventid searches return a bare feature
            features = [data] if data.get("type") == "Feature" else data.get("features", [])
            logger.debug("Fetched page of %d events at offset %d", len(features), offset)

            yield from parse_events({"features": features})

            if len(features) < page_limit:
                return
            offset += len(features)
            if remaining is not None:
                remaining -= len(features)

    def get_event(self, eventid: str) -> Event:
        params = {"eventid": eventid, "format": "geojson"}
        with requests.Session() as session:
            response = self._get(session, "query", params, missing_ok=True)
        if response.status_code in (204, 404):
            raise EventNotFound(eventid)

        event = parse_event(response.json())
        if event is None:
            raise EventNotFound(eventid)
        return event

    def get_catalogs(self) -> list[str]:
        with requests.Session() as session:
            return _xml_list(self._get(session, "catalogs", {}).text, "Catalog")

    def get_contributors(self) -> list[str]:
        with requests.Session() as session:
            return _xml_list(self._get(session, "contributors", {}).text, "Contributor")
