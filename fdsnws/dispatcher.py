"""Search Dispatcher - Wires Functional Core and Imperative Shell.

This module coordinates one web service request: parameters are validated
by the core, matching events come from the event index (shell), and the
selected feed formatter serializes them as they are produced.
"""

import dataclasses
import html
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator, Mapping
from xml.sax.saxutils import escape

from fdsnws.core.config import ServiceConfig
from fdsnws.core.detail import (
    DETAIL_RENDERERS,
    GEOJSONP,
    Renderer,
    cache_headers,
    cache_max_age,
)
from fdsnws.core.errors import (
    BAD_REQUEST,
    NO_DATA,
    SERVICE_UNAVAILABLE,
    ErrorReporter,
    EventNotFound,
    IndexUnavailable,
)
from fdsnws.core.feeds import FeedFormatter, create_feed
from fdsnws.core.query import (
    ALERT_LEVEL_VALUES,
    EMBEDDABLE_FORMATS,
    KML_COLOR_BY_VALUES,
    ORDER_BY_VALUES,
    QUAKEML,
    REVIEW_STATUS_VALUES,
    SUMMARY_FORMATS,
    Query,
)
from fdsnws.core.response import ServiceResponse
from fdsnws.core.validation import ParameterValidator
from fdsnws.shell.index import EventIndex


logger = logging.getLogger(__name__)


WADL_PATH = Path(__file__).parent / "data" / "application.wadl"

XML = "application/xml"
TEXT = "text/plain"


class SearchDispatcher:
    """Handles event web service requests.

    This class wires together:
    - ParameterValidator (raw parameters -> Query)
    - Event index (counts, lazy event sequences, event lookup)
    - Feed formatters (summary output) and detail renderers
    """

    def __init__(
        self,
        index: EventIndex,
        config: ServiceConfig,
        renderers: Mapping[str, Renderer] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize dispatcher.

        Args:
            index: Event index used for every request
            config: Immutable service configuration
            renderers: Detail renderers by format name (defaults provided)
            clock: Returns the current UTC time (injectable for tests)
        """
        self.index = index
        self.config = config
        self.renderers = dict(renderers if renderers is not None else DETAIL_RENDERERS)
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.validator = ParameterValidator(config, index, self.clock)

    def _reporter(self, request_uri: str) -> ErrorReporter:
        return ErrorReporter(self.config, request_uri, self.clock())

    def query(self, params: Mapping[str, str], request_uri: str = "") -> ServiceResponse:
        """Handle the FDSN ``query`` method.

        Searches and every quakeml request get summary handling; an eventid
        in any other format is a detail request.

        Raises:
            ServiceError: If the request is invalid or cannot be served
        """
        reporter = self._reporter(request_uri)
        try:
            query = self.validator.parse_query(params, reporter)
        except IndexUnavailable as e:
            reporter.error(SERVICE_UNAVAILABLE, str(e))

        if query.is_summary:
            return self.handle_summary(query, reporter)
        return self.handle_detail(query, reporter)

    def handle_summary(self, query: Query, reporter: ErrorReporter) -> ServiceResponse:
        """Count, enforce the service limit, then stream matching events.

        The returned body is a generator; no event is read from the index
        until the response is written.
        """
        try:
            count = self.index.get_event_count(query)
        except IndexUnavailable as e:
            reporter.error(SERVICE_UNAVAILABLE, str(e))

        limit = self.config.service_limit
        if count == 0:
            # empty quakeml documents are not allowed, other formats render empty feeds
            if query.format == QUAKEML:
                reporter.error(NO_DATA)
        elif count > limit and (query.limit is None or query.limit > limit):
            logger.info("Rejected search matching %d events (limit %d)", count, limit)
            reporter.error(
                BAD_REQUEST,
                f"{count} matching events exceeds service limit of {limit}."
                " Use limit and offset parameters or modify the search to match fewer events.",
            )

        query = dataclasses.replace(query, result_count=count)
        feed = create_feed(query, self.config, self.clock)

        logger.info("Streaming %s feed for %d matching events", query.format, count)

        return ServiceResponse(
            status=200,
            media_type=feed.content_type,
            body=self._stream(query, feed),
        )

    def _stream(self, query: Query, feed: FeedFormatter) -> Iterator[str]:
        """Forward each event from the index to the formatter exactly once.

        Closing this generator early (client disconnect) exits the ``with``
        block and releases the index sequence.
        """
        yield feed.begin()
        try:
            with self.index.events(query) as events:
                for event in events:
                    yield feed.write(event)
        except Exception:
            logger.exception("Feed aborted after %d events", feed.count)
            raise
        yield feed.end()

    def handle_detail(self, query: Query, reporter: ErrorReporter) -> ServiceResponse:
        """Render one event with cache directives based on its age."""
        try:
            event = self.index.get_event(query.eventid)
        except EventNotFound:
            logger.info("Event %s not found", query.eventid)
            reporter.error(NO_DATA)
        except IndexUnavailable as e:
            reporter.error(SERVICE_UNAVAILABLE, str(e))

        now = self.clock()
        max_age = cache_max_age(event, now)

        format_name = query.format
        if format_name in EMBEDDABLE_FORMATS and query.has_callback:
            format_name = GEOJSONP

        renderer = self.renderers.get(format_name)
        if renderer is None:
            reporter.error(BAD_REQUEST, f'Detail format "{format_name}" is not available.')

        content_type, body = renderer(event, query, self.config)
        return ServiceResponse(
            status=200,
            media_type=content_type,
            body=[body],
            headers=cache_headers(max_age, now),
        )

    def _index_list(self, getter: Callable[[], list[str]], request_uri: str) -> list[str]:
        try:
            return getter()
        except IndexUnavailable as e:
            self._reporter(request_uri).error(SERVICE_UNAVAILABLE, str(e))

    def catalogs(self, request_uri: str = "") -> ServiceResponse:
        """List catalogs known to the index."""
        catalogs = self._index_list(self.index.get_catalogs, request_uri)
        return ServiceResponse(200, XML, [_xml_list("Catalogs", "Catalog", catalogs)])

    def contributors(self, request_uri: str = "") -> ServiceResponse:
        """List contributors known to the index."""
        contributors = self._index_list(self.index.get_contributors, request_uri)
        return ServiceResponse(
            200, XML, [_xml_list("Contributors", "Contributor", contributors)]
        )

    def version(self) -> ServiceResponse:
        return ServiceResponse(200, TEXT, [self.config.version])

    def wadl(self) -> ServiceResponse:
        """Static service description with the base URL filled in."""
        wadl = WADL_PATH.read_text()
        wadl = wadl.replace("BASEURL", html.escape(self.config.service_url))
        return ServiceResponse(200, XML, [wadl])

    def application_json(self, request_uri: str = "") -> ServiceResponse:
        """Valid values for enumerated parameters, used by search forms."""
        document = {
            "catalogs": self._index_list(self.index.get_catalogs, request_uri),
            "contributors": self._index_list(self.index.get_contributors, request_uri),
            "formats": list(SUMMARY_FORMATS),
            "orderby": list(ORDER_BY_VALUES),
            "reviewstatus": list(REVIEW_STATUS_VALUES),
            "alertlevel": list(ALERT_LEVEL_VALUES),
            "kmlcolorby": list(KML_COLOR_BY_VALUES),
            "servicelimit": self.config.service_limit,
        }
        return ServiceResponse(200, "application/json", [json.dumps(document)])


def _xml_list(root: str, element: str, values: list[str]) -> str:
    items = "".join(f"<{element}>{escape(value)}</{element}>" for value in values)
    return f'<?xml version="1.0"?>\n<{root}>{items}</{root}>'
