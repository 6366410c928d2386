"""Functional Core - Pure functions with no side effects.

This module contains all business logic as pure functions:
- Event data model and parsing
- Request parameter validation
- Error reporting
- Feed and detail formatting
- Geographic matching

All functions here are deterministic and have no I/O.
"""

from fdsnws.core.config import ServiceConfig, validate_config
from fdsnws.core.errors import ErrorReporter, EventNotFound, ServiceError
from fdsnws.core.event import Event, Product, parse_event, parse_events
from fdsnws.core.feeds import FeedFormatter, create_feed
from fdsnws.core.query import Query
from fdsnws.core.validation import ParameterValidator

__all__ = [
    # Config
    "ServiceConfig",
    "validate_config",
    # Errors
    "ErrorReporter",
    "EventNotFound",
    "ServiceError",
    # Events
    "Event",
    "Product",
    "parse_event",
    "parse_events",
    # Feeds
    "FeedFormatter",
    "create_feed",
    # Validation
    "Query",
    "ParameterValidator",
]
