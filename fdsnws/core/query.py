"""Validated search request model.

A Query is built once per request by the ParameterValidator and consumed by
the dispatcher. It is frozen; derived values are attached with
``dataclasses.replace``.
"""

from dataclasses import dataclass


# Fully structured default format
QUAKEML = "quakeml"
GEOJSON = "geojson"
CSV = "csv"
KML = "kml"

SUMMARY_FORMATS = (QUAKEML, GEOJSON, CSV, KML)

# Formats that can be wrapped in a caller-named callback
EMBEDDABLE_FORMATS = (GEOJSON,)

ORDER_BY_VALUES = ("time", "time-asc", "magnitude", "magnitude-asc")
REVIEW_STATUS_VALUES = ("automatic", "reviewed")
ALERT_LEVEL_VALUES = ("green", "yellow", "orange", "red")
KML_COLOR_BY_VALUES = ("age", "depth")


@dataclass(frozen=True)
class Query:
    """Canonical representation of one event search request.

    Times are epoch milliseconds. Every field is optional; ``None`` means
    the constraint was not requested.
    """
    starttime: int | None = None
    endtime: int | None = None
    updatedafter: int | None = None

    minlatitude: float | None = None
    maxlatitude: float | None = None
    minlongitude: float | None = None
    maxlongitude: float | None = None

    latitude: float | None = None
    longitude: float | None = None
    minradius: float | None = None
    maxradius: float | None = None

    mindepth: float | None = None
    maxdepth: float | None = None
    minmagnitude: float | None = None
    maxmagnitude: float | None = None
    magnitudetype: str | None = None

    includeallorigins: bool | None = None
    includeallmagnitudes: bool | None = None
    includearrivals: bool | None = None

    eventid: str | None = None
    limit: int | None = None
    offset: int | None = None
    orderby: str | None = None
    catalog: str | None = None
    contributor: str | None = None

    format: str = QUAKEML
    callback: str | None = None

    eventtype: str | None = None
    reviewstatus: str | None = None
    minmmi: float | None = None
    maxmmi: float | None = None
    mincdi: float | None = None
    maxcdi: float | None = None
    minfelt: int | None = None
    alertlevel: str | None = None
    mingap: float | None = None
    maxgap: float | None = None
    minsig: int | None = None
    maxsig: int | None = None
    producttype: str | None = None
    kmlcolorby: str | None = None
    kmlanimated: bool | None = None

    result_count: int | None = None

    @property
    def is_circle(self) -> bool:
        """True when this is an area-circle search."""
        return (
            self.latitude is not None
            and self.longitude is not None
            and self.maxradius is not None
        )

    @property
    def has_callback(self) -> bool:
        return self.callback is not None

    @property
    def is_summary(self) -> bool:
        """Summary handling applies to searches and to every quakeml request."""
        return self.eventid is None or self.format == QUAKEML
