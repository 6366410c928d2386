"""Tests for the SearchDispatcher.

Tests the coordination between validation, the event index and the feed
formatters. Uses a fake in-process index that records how its event
sequences are opened and released.
"""

import json
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

import pytest

from fdsnws.core.config import ServiceConfig
from fdsnws.core.errors import EventNotFound, IndexUnavailable, ServiceError
from fdsnws.core.event import Event, ms_from_datetime
from fdsnws.core.query import Query
from fdsnws.dispatcher import SearchDispatcher
from fdsnws.shell.index import EventIndex


NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def make_event(event_id: str, days_ago: float = 1.0, magnitude: float = 4.0) -> Event:
    return Event(
        id=event_id,
        time=ms_from_datetime(NOW - timedelta(days=days_ago)),
        latitude=35.0,
        longitude=-118.0,
        depth=10.0,
        magnitude=magnitude,
        net="us",
    )


class FakeIndex(EventIndex):
    """Index over a fixed event list with sequence bookkeeping."""

    def __init__(self, events=(), count=None, fail_after=None):
        self.events_list = list(events)
        self.count = count
        self.fail_after = fail_after
        self.opened = 0
        self.closed = 0
        self.unavailable = False

    def _check(self):
        if self.unavailable:
            raise IndexUnavailable("index down")

    def get_event_count(self, query):
        self._check()
        return len(self.events_list) if self.count is None else self.count

    @contextmanager
    def events(self, query):
        self.opened += 1
        try:
            yield self._iterate()
        finally:
            self.closed += 1

    def _iterate(self):
        for i, event in enumerate(self.events_list):
            if self.fail_after is not None and i >= self.fail_after:
                raise IndexUnavailable("cursor lost")
            yield event

    def get_event(self, eventid):
        self._check()
        for event in self.events_list:
            if event.id == eventid:
                return event
        raise EventNotFound(eventid)

    def get_catalogs(self):
        self._check()
        return ["us", "ci"]

    def get_contributors(self):
        self._check()
        return ["us", "ci", "nc"]


@pytest.fixture
def config():
    return ServiceConfig(service_limit=3, version="1.2.3", host_url_prefix="https://example.org")


@pytest.fixture
def index():
    return FakeIndex([make_event("a"), make_event("b", magnitude=5.0)])


@pytest.fixture
def dispatcher(index, config):
    return SearchDispatcher(index, config, clock=lambda: NOW)


def rejection(call, *args) -> ServiceError:
    with pytest.raises(ServiceError) as exc_info:
        call(*args)
    return exc_info.value


class TestSummary:
    """Tests for search requests."""

    def test_streams_geojson(self, dispatcher):
        response = dispatcher.query({"format": "geojson"}, "/fdsnws/event/1/query?format=geojson")

        document = json.loads(response.text())

        assert response.status == 200
        assert response.media_type == "application/json"
        assert document["metadata"]["count"] == 2
        assert [f["id"] for f in document["features"]] == ["a", "b"]

    def test_default_format_is_quakeml(self, dispatcher):
        response = dispatcher.query({})

        assert response.media_type == "application/xml"
        assert response.text().count("<event ") == 2

    def test_body_is_lazy(self, dispatcher, index):
        """The index sequence is only opened once the body is consumed."""
        response = dispatcher.query({"format": "csv"})

        assert index.opened == 0
        response.text()
        assert (index.opened, index.closed) == (1, 1)

    def test_every_event_written_once(self, dispatcher, index):
        index.events_list = [make_event(str(i)) for i in range(3)]

        body = dispatcher.query({"format": "csv"}).text()

        assert body.count("\n") == 4

    def test_no_data_for_empty_quakeml(self, config):
        dispatcher = SearchDispatcher(FakeIndex(), config, clock=lambda: NOW)

        error = rejection(dispatcher.query, {})

        assert error.status == 204
        assert error.body is None

    @pytest.mark.parametrize("fmt", ["geojson", "csv", "kml"])
    def test_empty_feed_for_other_formats(self, config, fmt):
        dispatcher = SearchDispatcher(FakeIndex(), config, clock=lambda: NOW)

        response = dispatcher.query({"format": fmt})

        assert response.status == 200
        assert response.text()

    def test_over_service_limit_rejected(self, config):
        index = FakeIndex(count=4)
        dispatcher = SearchDispatcher(index, config, clock=lambda: NOW)

        error = rejection(dispatcher.query, {"format": "geojson"})

        assert error.status == 400
        assert "4 matching events exceeds service limit of 3." in error.body
        assert index.opened == 0

    def test_paged_search_over_limit_allowed(self, config):
        """A limit within the service limit makes a large search acceptable."""
        index = FakeIndex([make_event("a")], count=4)
        dispatcher = SearchDispatcher(index, config, clock=lambda: NOW)

        response = dispatcher.query({"format": "geojson", "limit": "2"})

        assert json.loads(response.text())["metadata"]["count"] == 4

    def test_count_at_limit_allowed(self, config):
        index = FakeIndex([make_event(str(i)) for i in range(3)])
        dispatcher = SearchDispatcher(index, config, clock=lambda: NOW)

        assert dispatcher.query({"format": "csv"}).status == 200

    def test_invalid_parameter_does_not_touch_index(self, dispatcher, index):
        error = rejection(dispatcher.query, {"minmagnitude": "big"})

        assert error.status == 400
        assert index.opened == 0

    @pytest.mark.parametrize("params", [
        {"format": "geojson", "callback": ""},
        {"eventid": "a", "format": "geojson", "callback": ""},
    ])
    def test_empty_callback_rejected(self, dispatcher, index, params):
        """An empty callback is a bad request on search and detail alike."""
        error = rejection(dispatcher.query, params)

        assert error.status == 400
        assert index.opened == 0

    def test_count_failure_is_unavailable(self, dispatcher, index):
        index.unavailable = True

        error = rejection(dispatcher.query, {"format": "geojson"})

        assert error.status == 503
        assert "index down" in error.body

    def test_catalog_lookup_failure_is_unavailable(self, dispatcher, index):
        index.unavailable = True

        error = rejection(dispatcher.query, {"catalog": "us"})

        assert error.status == 503

    def test_failure_mid_stream_releases_index(self, dispatcher, index):
        """An index failure while streaming propagates and closes the sequence."""
        index.fail_after = 1
        body = dispatcher.query({"format": "geojson"}).body

        chunks = [next(body), next(body)]
        with pytest.raises(IndexUnavailable):
            next(body)

        assert '"id":"a"' in chunks[1]
        assert (index.opened, index.closed) == (1, 1)

    def test_client_disconnect_releases_index(self, dispatcher, index):
        """Closing the body early exits the index context."""
        body = dispatcher.query({"format": "geojson"}).body
        next(body)
        next(body)

        body.close()

        assert (index.opened, index.closed) == (1, 1)

    def test_quakeml_with_eventid_is_summary(self, dispatcher):
        response = dispatcher.query({"eventid": "a"})
        assert response.media_type == "application/xml"


class TestDetail:
    """Tests for single event requests."""

    def test_geojson_detail(self, dispatcher):
        response = dispatcher.query({"eventid": "a", "format": "geojson"})

        feature = json.loads(response.text())

        assert response.media_type == "application/json"
        assert feature["id"] == "a"
        assert "products" in feature["properties"]

    def test_recent_event_short_cache(self, dispatcher):
        response = dispatcher.query({"eventid": "a", "format": "geojson"})

        assert response.headers["Cache-Control"] == "max-age=60"

    def test_old_event_long_cache(self, dispatcher, index):
        index.events_list.append(make_event("old", days_ago=30))

        response = dispatcher.query({"eventid": "old", "format": "csv"})

        assert response.headers["Cache-Control"] == "max-age=900"

    def test_callback_selects_geojsonp(self, dispatcher):
        response = dispatcher.query({"eventid": "a", "format": "geojson", "callback": "show"})

        assert response.media_type == "text/javascript"
        assert response.text().startswith("show(")

    def test_unknown_event_no_data(self, dispatcher):
        error = rejection(dispatcher.query, {"eventid": "zz", "format": "geojson"})

        assert error.status == 204

    def test_missing_renderer(self, index, config):
        dispatcher = SearchDispatcher(index, config, renderers={}, clock=lambda: NOW)

        error = rejection(dispatcher.query, {"eventid": "a", "format": "csv"})

        assert error.status == 400
        assert 'Detail format "csv" is not available.' in error.body

    def test_lookup_failure_is_unavailable(self, dispatcher, index):
        index.unavailable = True

        error = rejection(dispatcher.query, {"eventid": "a", "format": "kml"})

        assert error.status == 503


class TestServiceMethods:
    """Tests for catalogs, contributors, version and service descriptions."""

    def test_catalogs(self, dispatcher):
        response = dispatcher.catalogs()

        assert response.media_type == "application/xml"
        assert response.text() == (
            '<?xml version="1.0"?>\n<Catalogs><Catalog>us</Catalog><Catalog>ci</Catalog></Catalogs>'
        )

    def test_contributors(self, dispatcher):
        assert "<Contributor>nc</Contributor>" in dispatcher.contributors().text()

    def test_lists_unavailable(self, dispatcher, index):
        index.unavailable = True

        error = rejection(dispatcher.catalogs, "/fdsnws/event/1/catalogs")

        assert error.status == 503
        assert "/fdsnws/event/1/catalogs" in error.body

    def test_version(self, dispatcher):
        response = dispatcher.version()

        assert response.media_type == "text/plain"
        assert response.text() == "1.2.3"

    def test_wadl_base_url(self, dispatcher):
        body = dispatcher.wadl().text()

        assert "BASEURL" not in body
        assert 'base="https://example.org/fdsnws/event/1"' in body

    def test_application_json(self, dispatcher):
        document = json.loads(dispatcher.application_json().text())

        assert document["catalogs"] == ["us", "ci"]
        assert document["formats"] == ["quakeml", "geojson", "csv", "kml"]
        assert document["servicelimit"] == 3
