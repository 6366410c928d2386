"""Request parameter validation.

Turns raw query-string parameters into a validated Query. Parameters are
checked in request order and the first invalid one aborts the request through
the ErrorReporter. Cross-field rules run after every parameter has parsed.
"""

import dataclasses
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from fdsnws.core.config import ServiceConfig
from fdsnws.core.errors import BAD_REQUEST, NOT_IMPLEMENTED, ErrorReporter
from fdsnws.core.event import ms_from_datetime
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


logger = logging.getLogger(__name__)


# Added by URL rewriting, never a search parameter
ROUTING_PARAMETER = "method"

PARAMETER_ALIASES = {
    "start": "starttime",
    "end": "endtime",
    "minlat": "minlatitude",
    "maxlat": "maxlatitude",
    "minlon": "minlongitude",
    "maxlon": "maxlongitude",
    "lat": "latitude",
    "lon": "longitude",
    "minmag": "minmagnitude",
    "maxmag": "maxmagnitude",
    "magtype": "magnitudetype",
}

TIME_PARAMETERS = ("starttime", "endtime", "updatedafter")

# name -> (min, max), None for an open bound
FLOAT_PARAMETERS: dict[str, tuple[float | None, float | None]] = {
    "minlatitude": (-90, 90),
    "maxlatitude": (-90, 90),
    "minlongitude": (-360, 360),
    "maxlongitude": (-360, 360),
    "latitude": (-90, 90),
    "longitude": (-180, 180),
    "minradius": (0, 180),
    "maxradius": (0, 180),
    "mindepth": (None, None),
    "maxdepth": (None, None),
    "minmagnitude": (None, None),
    "maxmagnitude": (None, None),
    "minmmi": (0, 12),
    "maxmmi": (0, 12),
    "mincdi": (0, 12),
    "maxcdi": (0, 12),
    "mingap": (0, 360),
    "maxgap": (0, 360),
}

# limit is bounded by the configured service limit at runtime
INTEGER_PARAMETERS: dict[str, tuple[int | None, int | None]] = {
    "offset": (1, None),
    "minfelt": (0, None),
    "minsig": (0, None),
    "maxsig": (0, None),
}

BOOLEAN_PARAMETERS = (
    "includeallorigins",
    "includeallmagnitudes",
    "includearrivals",
    "kmlanimated",
)

ENUMERATED_PARAMETERS: dict[str, tuple[str, ...]] = {
    "orderby": ORDER_BY_VALUES,
    "format": SUMMARY_FORMATS,
    "reviewstatus": REVIEW_STATUS_VALUES,
    "alertlevel": ALERT_LEVEL_VALUES,
    "kmlcolorby": KML_COLOR_BY_VALUES,
}

PASSTHROUGH_PARAMETERS = (
    "eventid",
    "magnitudetype",
    "callback",
    "eventtype",
    "producttype",
)

# whole-value patterns, applied with fullmatch
_NUMERIC = re.compile(r"\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*")
_DIGITS = re.compile(r"[0-9]+")

# strptime fallbacks for values datetime.fromisoformat() rejects
_TIME_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%dT%H",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d",
    "%Y%m%dT%H%M%S",
    "%Y%m%d",
)


def parse_time(value: str) -> int | None:
    """Parse an ISO-8601 style timestamp into epoch milliseconds.

    Pure function. Naive values are interpreted as UTC.

    Returns:
        Epoch milliseconds, or None if the value cannot be parsed
    """
    text = value.strip()
    if not text:
        return None
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"

    try:
        return ms_from_datetime(datetime.fromisoformat(text))
    except ValueError:
        pass

    for fmt in _TIME_FORMATS:
        try:
            return ms_from_datetime(datetime.strptime(text, fmt))
        except ValueError:
            continue
    return None


def _format_bound(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _range_message(param: str, min_value: float | None, max_value: float | None) -> str:
    message = ""
    if min_value is not None:
        message += _format_bound(min_value) + " <= "
    message += param
    if max_value is not None:
        message += " <= " + _format_bound(max_value)
    return message


class ParameterValidator:
    """Parses raw request parameters into a validated Query.

    Catalog and contributor values are checked against lists supplied by
    the event index, fetched only when those parameters are present.
    """

    def __init__(
        self,
        config: ServiceConfig,
        index: Any,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize validator.

        Args:
            config: Service configuration (service limit, default lookback)
            index: Event index providing get_catalogs()/get_contributors()
            clock: Returns the current UTC time (injectable for tests)
        """
        self.config = config
        self.index = index
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def parse_query(self, params: Mapping[str, str], reporter: ErrorReporter) -> Query:
        """Parse and validate all parameters.

        Args:
            params: Parameter name -> raw string value, in request order
            reporter: Aborts the request on the first invalid value

        Returns:
            Validated Query
        """
        values: dict[str, Any] = {}

        for name, value in params.items():
            if name == ROUTING_PARAMETER:
                continue
            field_name = PARAMETER_ALIASES.get(name, name)
            values[field_name] = self._parse_parameter(name, field_name, value, reporter)

        query = Query(**values)
        query = self._check_combinations(query, reporter)
        return self._apply_defaults(query)

    def _parse_parameter(
        self,
        name: str,
        field_name: str,
        value: str,
        reporter: ErrorReporter,
    ) -> Any:
        if field_name in TIME_PARAMETERS:
            return self.validate_time(name, value, reporter)

        if field_name in FLOAT_PARAMETERS:
            min_value, max_value = FLOAT_PARAMETERS[field_name]
            return self.validate_float(name, value, min_value, max_value, reporter)

        if field_name == "limit":
            return self.validate_integer(name, value, 0, self.config.service_limit, reporter)

        if field_name in INTEGER_PARAMETERS:
            min_value, max_value = INTEGER_PARAMETERS[field_name]
            return self.validate_integer(name, value, min_value, max_value, reporter)

        if field_name in BOOLEAN_PARAMETERS:
            parsed = self.validate_boolean(name, value, reporter)
            if field_name == "includearrivals" and parsed:
                reporter.error(NOT_IMPLEMENTED, "includearrivals parameter is not supported")
            return parsed

        if field_name in ENUMERATED_PARAMETERS:
            return self.validate_enumerated(name, value, ENUMERATED_PARAMETERS[field_name], reporter)

        if field_name == "catalog":
            return self.validate_enumerated(name, value, self.index.get_catalogs(), reporter)

        if field_name == "contributor":
            return self.validate_enumerated(name, value, self.index.get_contributors(), reporter)

        if field_name == "callback" and not value:
            reporter.error(
                BAD_REQUEST,
                f'Bad {name} value "{value}". Valid values are non-empty function names.',
            )

        if field_name in PASSTHROUGH_PARAMETERS:
            return value

        logger.info("Rejected unknown parameter %s", name)
        reporter.error(BAD_REQUEST, f'Unknown parameter "{name}".')

    def _check_combinations(self, query: Query, reporter: ErrorReporter) -> Query:
        """Apply cross-field rules in their fixed order."""
        circle = (query.latitude, query.longitude, query.maxradius)
        if any(v is not None for v in circle) and any(v is None for v in circle):
            reporter.error(
                BAD_REQUEST,
                "Invalid area-circle parameter combination.\n"
                "latitude, longitude, and maxradius must all be specified for area-circle.",
            )

        if (
            query.minlatitude is not None and query.maxlatitude is not None
            and query.minlatitude > query.maxlatitude
        ):
            reporter.error(BAD_REQUEST, "minlatitude must be less than maxlatitude")

        if (
            query.minlongitude is not None and query.maxlongitude is not None
            and query.minlongitude > query.maxlongitude
        ):
            reporter.error(BAD_REQUEST, "minlongitude must be less than maxlongitude")

        if (
            (query.minlongitude is not None and query.minlongitude < -180
                and query.maxlongitude is None)
            or (query.maxlongitude is not None and query.maxlongitude > 180
                and query.minlongitude is None)
        ):
            reporter.error(
                BAD_REQUEST,
                "Searches that cross dateline require both minlongitude and maxlongitude.",
            )

        if query.minlongitude is not None and query.maxlongitude is not None:
            span = query.maxlongitude - query.minlongitude
            if span > 360:
                reporter.error(
                    BAD_REQUEST,
                    "Searches cannot span more than 360 degrees of longitude.",
                )
            elif span == 360:
                # every longitude matches
                query = dataclasses.replace(query, minlongitude=None, maxlongitude=None)

        if query.format != QUAKEML and (query.includeallorigins or query.includeallmagnitudes):
            reporter.error(
                BAD_REQUEST,
                "Cannot use includeallorigins or includeallmagnitudes"
                " parameters when format is not quakeml.",
            )

        if query.format not in EMBEDDABLE_FORMATS and query.has_callback:
            reporter.error(
                BAD_REQUEST,
                "Cannot use callback parameter when format is not geojson.",
            )

        return query

    def _apply_defaults(self, query: Query) -> Query:
        max_age = self.config.default_max_event_age
        if query.starttime is None and max_age is not None:
            now_seconds = int(self.clock().timestamp())
            return dataclasses.replace(query, starttime=(now_seconds - max_age) * 1000)
        return query

    def validate_time(self, param: str, value: str, reporter: ErrorReporter) -> int:
        """Validate a time parameter, returning epoch milliseconds."""
        parsed = parse_time(value)
        if parsed is None:
            reporter.error(
                BAD_REQUEST,
                f'Bad {param} value "{value}". Valid values are ISO-8601 timestamps.',
            )
        return parsed

    def validate_boolean(self, param: str, value: str, reporter: ErrorReporter) -> bool:
        """Validate a boolean parameter ("true" or "false", case insensitively)."""
        val = value.lower()
        if val not in ("true", "false"):
            reporter.error(
                BAD_REQUEST,
                f'Bad {param} value "{value}".'
                ' Valid values are (case insensitive): "TRUE", "FALSE".',
            )
        return val == "true"

    def validate_integer(
        self,
        param: str,
        value: str,
        min_value: int | None,
        max_value: int | None,
        reporter: ErrorReporter,
    ) -> int:
        """Validate a non-negative integer parameter within optional bounds."""
        if (
            not _DIGITS.fullmatch(value)
            or (min_value is not None and int(value) < min_value)
            or (max_value is not None and int(value) > max_value)
        ):
            if min_value is None and max_value is None:
                message = "integers"
            else:
                message = _range_message(param, min_value, max_value)
            reporter.error(
                BAD_REQUEST,
                f'Bad {param} value "{value}". Valid values are {message}',
            )
        return int(value)

    def validate_float(
        self,
        param: str,
        value: str,
        min_value: float | None,
        max_value: float | None,
        reporter: ErrorReporter,
    ) -> float:
        """Validate a numeric parameter within optional inclusive bounds."""
        if (
            not _NUMERIC.fullmatch(value)
            or (min_value is not None and float(value) < min_value)
            or (max_value is not None and float(value) > max_value)
        ):
            if min_value is None and max_value is None:
                message = "numeric"
            else:
                message = _range_message(param, min_value, max_value)
            reporter.error(
                BAD_REQUEST,
                f'Bad {param} value "{value}". Valid values are {message}',
            )
        return float(value)

    def validate_enumerated(
        self,
        param: str,
        value: str,
        enum: tuple[str, ...] | list[str],
        reporter: ErrorReporter,
    ) -> str:
        """Validate a parameter with a fixed list of valid values."""
        if value not in enum:
            allowed = '", "'.join(enum)
            reporter.error(
                BAD_REQUEST,
                f'Bad {param} value "{value}". Valid values are: "{allowed}".',
            )
        return value
