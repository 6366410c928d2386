"""Error reporting for the event web service.

ErrorReporter.error() is the only way a request is aborted. It always raises
ServiceError, which the web layer turns into the final response.
"""

from datetime import datetime, timezone
from typing import NoReturn

from fdsnws.core.config import ServiceConfig


NO_DATA = 204
BAD_REQUEST = 400
NOT_IMPLEMENTED = 501
SERVICE_UNAVAILABLE = 503

STATUS_MESSAGES = {
    BAD_REQUEST: "Bad Request",
    NOT_IMPLEMENTED: "Not Implemented",
    SERVICE_UNAVAILABLE: "Service Unavailable",
}


class ServiceError(Exception):
    """Terminal request error.

    Attributes:
        status: HTTP status code
        body: Plain-text diagnostic, or None when only the status is sent
    """

    def __init__(self, status: int, body: str | None = None) -> None:
        super().__init__(body or str(status))
        self.status = status
        self.body = body


class EventNotFound(LookupError):
    """Raised by an event index when an event id does not resolve."""

    def __init__(self, eventid: str) -> None:
        super().__init__(f"Event {eventid!r} not found")
        self.eventid = eventid


class IndexUnavailable(RuntimeError):
    """Raised by an event index when its backing store cannot be reached."""


def format_error(
    code: int,
    message: str | None,
    config: ServiceConfig,
    request_uri: str,
    submitted: datetime,
) -> str:
    """Build the fixed-structure diagnostic body.

    Pure function.
    """
    return "\n".join([
        f"Error {code}: {STATUS_MESSAGES.get(code, '')}",
        "",
        message or "",
        "",
        f"Usage details are available from {config.service_url}",
        "",
        "Request:",
        request_uri,
        "",
        "Request Submitted:",
        submitted.astimezone(timezone.utc).isoformat(timespec="seconds"),
        "",
        "Service version:",
        config.version,
    ])


class ErrorReporter:
    """Aborts the current request with a status and diagnostic.

    One reporter is created per request so the diagnostic can cite the
    request target and submission time.
    """

    def __init__(
        self,
        config: ServiceConfig,
        request_uri: str = "",
        submitted: datetime | None = None,
    ) -> None:
        """Initialize reporter.

        Args:
            config: Service configuration (version, usage URL)
            request_uri: Verbatim request target, echoed in diagnostics
            submitted: Request submission time (defaults to now, UTC)
        """
        self.config = config
        self.request_uri = request_uri
        self.submitted = submitted or datetime.now(timezone.utc)

    def error(self, code: int, message: str | None = None) -> NoReturn:
        """Abort the request.

        Codes below 400 (e.g. no data) carry no body.

        Raises:
            ServiceError: always
        """
        if code < 400:
            raise ServiceError(code)

        raise ServiceError(
            code,
            format_error(code, message, self.config, self.request_uri, self.submitted),
        )
