"""Response value produced by the dispatcher."""

from dataclasses import dataclass, field
from typing import Iterable


@dataclass
class ServiceResponse:
    """Status, media type and body for one request.

    Attributes:
        status: HTTP status code
        media_type: Content-Type of the body
        body: Text chunks; for searches this is a lazy generator that is
            only consumed while the response is being written
        headers: Extra response headers (cache directives)
    """
    status: int
    media_type: str
    body: Iterable[str]
    headers: dict[str, str] = field(default_factory=dict)

    def text(self) -> str:
        """Consume the body and join it. Intended for small bodies and tests."""
        return "".join(self.body)
