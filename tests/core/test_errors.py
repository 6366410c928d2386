"""Unit tests for error reporting.

Pure function tests - no mocks needed, fast execution.
"""

from datetime import datetime, timedelta, timezone

import pytest

from fdsnws.core.config import ServiceConfig
from fdsnws.core.errors import (
    BAD_REQUEST,
    NO_DATA,
    NOT_IMPLEMENTED,
    SERVICE_UNAVAILABLE,
    ErrorReporter,
    EventNotFound,
    ServiceError,
    format_error,
)


SUBMITTED = datetime(2024, 6, 1, 12, 30, 5, 250000, tzinfo=timezone.utc)


@pytest.fixture
def config():
    return ServiceConfig(version="1.2.3", host_url_prefix="https://example.org")


class TestFormatError:
    """Tests for the fixed-structure diagnostic body."""

    def test_body_layout(self, config):
        """The body has a fixed line structure."""
        body = format_error(
            BAD_REQUEST, "Something is wrong.", config, "/fdsnws/event/1/query?x=1", SUBMITTED
        )

        assert body.split("\n") == [
            "Error 400: Bad Request",
            "",
            "Something is wrong.",
            "",
            "Usage details are available from https://example.org/fdsnws/event/1",
            "",
            "Request:",
            "/fdsnws/event/1/query?x=1",
            "",
            "Request Submitted:",
            "2024-06-01T12:30:05+00:00",
            "",
            "Service version:",
            "1.2.3",
        ]

    def test_submitted_time_converted_to_utc(self, config):
        submitted = SUBMITTED.astimezone(timezone(timedelta(hours=-7)))

        body = format_error(SERVICE_UNAVAILABLE, None, config, "/", submitted)

        assert "2024-06-01T12:30:05+00:00" in body
        assert body.startswith("Error 503: Service Unavailable\n")

    def test_not_implemented_phrase(self, config):
        body = format_error(NOT_IMPLEMENTED, "nope", config, "/", SUBMITTED)
        assert body.startswith("Error 501: Not Implemented")


class TestErrorReporter:
    """Tests for ErrorReporter.error()."""

    def test_raises_with_body(self, config):
        reporter = ErrorReporter(config, "/fdsnws/event/1/query", SUBMITTED)

        with pytest.raises(ServiceError) as exc_info:
            reporter.error(BAD_REQUEST, "Bad thing.")

        assert exc_info.value.status == 400
        assert "Bad thing." in exc_info.value.body
        assert "/fdsnws/event/1/query" in exc_info.value.body

    def test_no_data_has_no_body(self, config):
        """Codes below 400 abort with the status alone."""
        reporter = ErrorReporter(config)

        with pytest.raises(ServiceError) as exc_info:
            reporter.error(NO_DATA)

        assert exc_info.value.status == 204
        assert exc_info.value.body is None

    def test_submitted_defaults_to_now(self, config):
        reporter = ErrorReporter(config)
        assert reporter.submitted.tzinfo is not None


class TestEventNotFound:
    """Tests for EventNotFound."""

    def test_is_lookup_error(self):
        error = EventNotFound("us123")

        assert isinstance(error, LookupError)
        assert error.eventid == "us123"
