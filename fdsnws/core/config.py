"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field


DEFAULT_SERVICE_LIMIT = 20000
DEFAULT_FDSN_PATH = "/fdsnws/event/1"
DEFAULT_FEED_PATH = "/earthquakes/feed/v1.0"

INDEX_BACKENDS = ("memory", "upstream")


@dataclass(frozen=True)
class ServiceConfig:
    """Process-wide service configuration.

    Established once at startup and injected into the validator and the
    dispatcher. This is a pure data structure - no I/O or side effects.

    Attributes:
        version: Service version reported by /version and in error bodies
        service_limit: Maximum matching events returned without paging
        default_max_event_age: Default lookback in seconds when no starttime
            is given (None leaves starttime unbounded)
        host_url_prefix: Scheme and host used to build absolute URLs
        fdsn_path: Path prefix of the FDSN event web service
        feed_path: Path prefix of the legacy feeds (detail links)
        index_backend: Event index implementation ('memory' or 'upstream')
        events_file: GeoJSON file loaded by the memory index
        upstream_url: Base URL of the upstream FDSN event service
        upstream_page_size: Events fetched per upstream request
    """
    version: str = "1.0.0"
    service_limit: int = DEFAULT_SERVICE_LIMIT
    default_max_event_age: int | None = None
    host_url_prefix: str = "http://localhost:8000"
    fdsn_path: str = DEFAULT_FDSN_PATH
    feed_path: str = DEFAULT_FEED_PATH
    index_backend: str = "memory"
    events_file: str | None = None
    upstream_url: str | None = None
    upstream_page_size: int = 1000

    @property
    def service_url(self) -> str:
        """Absolute URL of the FDSN event service."""
        return self.host_url_prefix + self.fdsn_path

    @property
    def feed_url(self) -> str:
        """Absolute URL of the legacy feed root."""
        return self.host_url_prefix + self.feed_path


@dataclass
class ValidationError:
    """A configuration validation error.

    Attributes:
        field: The field that has an error
        message: Human-readable error description
        severity: 'error' or 'warning'
    """
    field: str
    message: str
    severity: str = "error"


@dataclass
class ValidationResult:
    """Result of validating configuration.

    Attributes:
        valid: True if no errors (warnings are OK)
        errors: List of validation errors/warnings
    """
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def warnings(self) -> list[ValidationError]:
        """Get only warnings."""
        return [e for e in self.errors if e.severity == "warning"]

    @property
    def critical_errors(self) -> list[ValidationError]:
        """Get only critical errors."""
        return [e for e in self.errors if e.severity == "error"]


def _validate_path(value: str, field_name: str) -> list[ValidationError]:
    if not value.startswith("/") or value.endswith("/"):
        return [ValidationError(
            field=field_name,
            message=f"Path must start with '/' and not end with '/', got {value!r}",
        )]
    return []


def validate_config(config: ServiceConfig) -> ValidationResult:
    """Validate configuration for errors and warnings.

    Pure function.

    Args:
        config: Configuration to validate

    Returns:
        ValidationResult with any errors/warnings found
    """
    errors: list[ValidationError] = []

    if config.service_limit <= 0:
        errors.append(ValidationError(
            field="service_limit",
            message=f"Service limit must be positive, got {config.service_limit}",
        ))

    if config.default_max_event_age is not None and config.default_max_event_age < 0:
        errors.append(ValidationError(
            field="default_max_event_age",
            message=(
                "Default max event age cannot be negative, "
                f"got {config.default_max_event_age}"
            ),
        ))

    errors.extend(_validate_path(config.fdsn_path, "fdsn_path"))
    errors.extend(_validate_path(config.feed_path, "feed_path"))

    if config.index_backend not in INDEX_BACKENDS:
        errors.append(ValidationError(
            field="index_backend",
            message=(
                f"Unknown index backend {config.index_backend!r}, "
                f"expected one of {', '.join(INDEX_BACKENDS)}"
            ),
        ))
    elif config.index_backend == "upstream":
        if not config.upstream_url:
            errors.append(ValidationError(
                field="upstream_url",
                message="upstream_url is required for the upstream index backend",
            ))
        if config.upstream_page_size <= 0:
            errors.append(ValidationError(
                field="upstream_page_size",
                message=f"Page size must be positive, got {config.upstream_page_size}",
            ))
    elif not config.events_file:
        errors.append(ValidationError(
            field="events_file",
            message="No events_file configured, memory index will be empty",
            severity="warning",
        ))

    if not config.version:
        errors.append(ValidationError(
            field="version",
            message="Service version is empty",
            severity="warning",
        ))

    has_critical = any(e.severity == "error" for e in errors)

    return ValidationResult(
        valid=not has_critical,
        errors=errors,
    )
