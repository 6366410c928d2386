"""Feed formatters - streaming serialization of search results.

A FeedFormatter is bound to one response. The dispatcher calls begin() once,
write() once per matching event, and end() once; each call returns the next
chunk of the document. Only O(1) state is kept between calls.
"""

import csv
import io
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from xml.sax.saxutils import escape, quoteattr

from fdsnws.core.config import ServiceConfig
from fdsnws.core.event import Event, datetime_from_ms, ms_from_datetime
from fdsnws.core.query import CSV, GEOJSON, KML, QUAKEML, Query


Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_time(value: int | None) -> str:
    """Format epoch milliseconds as ISO-8601 with millisecond precision."""
    if value is None:
        return ""
    return datetime_from_ms(value).strftime("%Y-%m-%dT%H:%M:%S.") + f"{value % 1000:03d}Z"


def _list_property(values: tuple[str, ...]) -> str | None:
    """USGS list properties are comma delimited with leading/trailing commas."""
    if not values:
        return None
    return "," + ",".join(values) + ","


def event_url(event: Event, config: ServiceConfig) -> str:
    return event.properties.get("url") or (
        f"{config.host_url_prefix}/earthquakes/eventpage/{event.id}"
    )


def event_to_feature(event: Event, config: ServiceConfig) -> dict[str, Any]:
    """Build the GeoJSON summary feature for an event.

    Pure function.
    """
    magnitude = "?" if event.magnitude is None else f"{event.magnitude:.1f}"
    properties: dict[str, Any] = {
        "mag": event.magnitude,
        "place": event.place,
        "time": event.time,
        "updated": event.updated,
        "tz": event.properties.get("tz"),
        "url": event_url(event, config),
        "detail": f"{config.feed_url}/detail/{event.id}.geojson",
        "felt": event.felt,
        "cdi": event.cdi,
        "mmi": event.mmi,
        "alert": event.alert,
        "status": event.status,
        "tsunami": int(event.tsunami),
        "sig": event.sig,
        "net": event.net,
        "code": event.code,
        "ids": _list_property(event.ids),
        "sources": _list_property(event.sources),
        "types": _list_property(event.types),
        "nst": event.properties.get("nst"),
        "dmin": event.properties.get("dmin"),
        "rms": event.properties.get("rms"),
        "gap": event.gap,
        "magType": event.mag_type,
        "type": event.event_type,
        "title": f"M {magnitude} - {event.place}",
    }
    for key, value in event.properties.items():
        properties.setdefault(key, value)

    return {
        "type": "Feature",
        "properties": properties,
        "geometry": {
            "type": "Point",
            "coordinates": [event.longitude, event.latitude, event.depth],
        },
        "id": event.id,
    }


class FeedFormatter:
    """Base class for streaming feed formats.

    Subclasses implement _header(), _entry() and _footer(); the base class
    enforces the single forward pass.
    """

    content_type = "text/plain"

    def __init__(
        self,
        query: Query,
        config: ServiceConfig,
        clock: Clock | None = None,
    ) -> None:
        self.query = query
        self.config = config
        self.clock = clock or _utc_now
        self.count = 0
        self._state = "new"

    def begin(self) -> str:
        """Start the document."""
        if self._state != "new":
            raise RuntimeError(f"{type(self).__name__} already started")
        self._state = "open"
        return self._header()

    def write(self, event: Event) -> str:
        """Serialize one event."""
        if self._state != "open":
            raise RuntimeError(f"{type(self).__name__} is not open for writing")
        self.count += 1
        return self._entry(event)

    def end(self) -> str:
        """Finish the document. The formatter cannot be used afterwards."""
        if self._state != "open":
            raise RuntimeError(f"{type(self).__name__} is not open")
        self._state = "closed"
        return self._footer()

    def _header(self) -> str:
        raise NotImplementedError

    def _entry(self, event: Event) -> str:
        raise NotImplementedError

    def _footer(self) -> str:
        raise NotImplementedError


class GeoJSONFeed(FeedFormatter):
    """GeoJSON FeatureCollection, optionally wrapped in a callback (JSONP)."""

    def __init__(
        self,
        query: Query,
        config: ServiceConfig,
        clock: Clock | None = None,
        callback: str | None = None,
    ) -> None:
        super().__init__(query, config, clock)
        self.callback = callback
        self.content_type = "application/json" if callback is None else "text/javascript"
        self._bbox: list[float] | None = None

    def _metadata(self) -> dict[str, Any]:
        return {
            "generated": ms_from_datetime(self.clock()),
            "url": f"{self.config.service_url}/query",
            "title": "USGS Earthquakes",
            "status": 200,
            "api": self.config.version,
            "count": self.query.result_count or 0,
        }

    def _header(self) -> str:
        head = (
            '{"type":"FeatureCollection","metadata":'
            + json.dumps(self._metadata(), separators=(",", ":"))
            + ',"features":['
        )
        if self.callback is not None:
            return f"{self.callback}({head}"
        return head

    def _entry(self, event: Event) -> str:
        self._extend_bbox(event)
        feature = json.dumps(event_to_feature(event, self.config), separators=(",", ":"))
        return feature if self.count == 1 else "," + feature

    def _extend_bbox(self, event: Event) -> None:
        depth = event.depth if event.depth is not None else 0.0
        point = (event.longitude, event.latitude, depth)
        if self._bbox is None:
            self._bbox = [*point, *point]
            return
        for i, value in enumerate(point):
            self._bbox[i] = min(self._bbox[i], value)
            self._bbox[i + 3] = max(self._bbox[i + 3], value)

    def _footer(self) -> str:
        tail = "]"
        if self._bbox is not None:
            tail += ',"bbox":' + json.dumps(self._bbox, separators=(",", ":"))
        tail += "}"
        if self.callback is not None:
            tail += ");"
        return tail


CSV_COLUMNS = (
    "time", "latitude", "longitude", "depth", "mag", "magType", "nst", "gap",
    "dmin", "rms", "net", "id", "updated", "place", "type", "status",
    "locationSource", "magSource",
)


def _csv_line(values: list[Any]) -> str:
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(
        ["" if v is None else v for v in values]
    )
    return buffer.getvalue()


class CSVFeed(FeedFormatter):
    """Comma separated values, one row per event."""

    content_type = "text/csv"

    def _header(self) -> str:
        return _csv_line(list(CSV_COLUMNS))

    def _entry(self, event: Event) -> str:
        props = event.properties
        return _csv_line([
            iso_time(event.time),
            event.latitude,
            event.longitude,
            event.depth,
            event.magnitude,
            event.mag_type,
            props.get("nst"),
            event.gap,
            props.get("dmin"),
            props.get("rms"),
            event.net,
            event.id,
            iso_time(event.updated),
            event.place,
            event.event_type,
            event.status,
            props.get("locationSource", event.net),
            props.get("magSource", event.net),
        ])

    def _footer(self) -> str:
        return ""


class QuakemlFeed(FeedFormatter):
    """QuakeML 1.2 event parameters document."""

    content_type = "application/xml"

    def _public_id(self, suffix: str) -> str:
        return f"quakeml:{self.config.service_url}/{suffix}"

    def _header(self) -> str:
        return (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            '<q:quakeml xmlns="http://quakeml.org/xmlns/bed/1.2"'
            ' xmlns:q="http://quakeml.org/xmlns/quakeml/1.2"'
            ' xmlns:catalog="http://anss.org/xmlns/catalog/0.1">'
            f'<eventParameters publicID={quoteattr(self._public_id("query"))}>'
        )

    def _entry(self, event: Event) -> str:
        event_id = self._public_id(f"query?eventid={event.id}")
        origin_id = self._public_id(f"origin/{event.id}")
        magnitude_id = self._public_id(f"magnitude/{event.id}")
        time = iso_time(event.time)

        parts = [
            f"<event publicID={quoteattr(event_id)}"
            f" catalog:eventid={quoteattr(event.code or event.id)}"
            f" catalog:datasource={quoteattr(event.net or '')}>",
            "<description><type>earthquake name</type>"
            f"<text>{escape(event.place)}</text></description>",
            f"<origin publicID={quoteattr(origin_id)}>",
            f"<time><value>{time}</value></time>",
            f"<longitude><value>{event.longitude}</value></longitude>",
            f"<latitude><value>{event.latitude}</value></latitude>",
        ]
        if event.depth is not None:
            parts.append(f"<depth><value>{event.depth * 1000:g}</value></depth>")
        parts.append(
            "<evaluationMode>"
            + ("manual" if event.status == "reviewed" else "automatic")
            + "</evaluationMode></origin>"
        )
        if event.magnitude is not None:
            parts.append(
                f"<magnitude publicID={quoteattr(magnitude_id)}>"
                f"<mag><value>{event.magnitude}</value></mag>"
                f"<type>{escape(event.mag_type or '')}</type>"
                f"<originID>{escape(origin_id)}</originID></magnitude>"
            )
        parts.append(f"<preferredOriginID>{escape(origin_id)}</preferredOriginID>")
        if event.magnitude is not None:
            parts.append(
                f"<preferredMagnitudeID>{escape(magnitude_id)}</preferredMagnitudeID>"
            )
        parts.append(f"<type>{escape(event.event_type)}</type>")
        parts.append(
            f"<creationInfo><agencyID>{escape(event.net or '')}</agencyID>"
            f"<creationTime>{iso_time(event.updated or event.time)}</creationTime>"
            "</creationInfo></event>"
        )
        return "".join(parts)

    def _footer(self) -> str:
        creation = self.clock().astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")
        return (
            f"<creationInfo><creationTime>{creation[:-3]}Z</creationTime></creationInfo>"
            "</eventParameters></q:quakeml>"
        )


# (upper bound, style id, aabbggrr color)
DEPTH_STYLES = (
    (35, "depth0", "ff0000ff"),
    (70, "depth35", "ff00a5ff"),
    (150, "depth70", "ff00ffff"),
    (300, "depth150", "ff00ff00"),
    (500, "depth300", "ffff0000"),
    (None, "depth500", "ff800080"),
)

AGE_STYLES = (
    (timedelta(hours=1), "agePastHour", "ff0000ff"),
    (timedelta(days=1), "agePastDay", "ff00a5ff"),
    (timedelta(days=7), "agePastWeek", "ff00ffff"),
    (None, "ageOlder", "ffffffff"),
)


class KMLFeed(FeedFormatter):
    """Google Earth KML placemarks styled by depth or age."""

    content_type = "application/vnd.google-earth.kml+xml"

    def __init__(
        self,
        query: Query,
        config: ServiceConfig,
        clock: Clock | None = None,
        color_by: str = "depth",
        animated: bool = True,
    ) -> None:
        super().__init__(query, config, clock)
        self.color_by = color_by
        self.animated = animated
        self._now = self.clock()

    def _styles(self) -> tuple:
        return DEPTH_STYLES if self.color_by == "depth" else AGE_STYLES

    def _style_for(self, event: Event) -> str:
        if self.color_by == "depth":
            depth = event.depth or 0.0
            for bound, style_id, _ in DEPTH_STYLES:
                if bound is None or depth < bound:
                    return style_id
        else:
            age = self._now - event.origin_time
            for bound, style_id, _ in AGE_STYLES:
                if bound is None or age < bound:
                    return style_id
        return self._styles()[-1][1]

    def _header(self) -> str:
        styles = "".join(
            f'<Style id="{style_id}"><IconStyle><color>{color}</color>'
            "<Icon><href>http://maps.google.com/mapfiles/kml/shapes/shaded_dot.png</href>"
            "</Icon></IconStyle></Style>"
            for _, style_id, color in self._styles()
        )
        return (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            '<kml xmlns="http://www.opengis.net/kml/2.2"><Document>'
            f"<name>USGS Earthquakes</name>{styles}<Folder>"
            f"<name>Colored by {escape(self.color_by)}</name>"
        )

    def _entry(self, event: Event) -> str:
        magnitude = "?" if event.magnitude is None else f"{event.magnitude:.1f}"
        timestamp = ""
        if self.animated:
            timestamp = f"<TimeStamp><when>{iso_time(event.time)}</when></TimeStamp>"
        # altitude in meters, negative below the surface
        altitude = -event.depth * 1000 if event.depth else 0.0
        return (
            f"<Placemark id={quoteattr(event.id)}>"
            f"<name>{escape(f'M {magnitude} - {event.place}')}</name>"
            f"{timestamp}<styleUrl>#{self._style_for(event)}</styleUrl>"
            f"<Point><coordinates>{event.longitude},{event.latitude},{altitude:g}"
            "</coordinates></Point></Placemark>"
        )

    def _footer(self) -> str:
        return "</Folder></Document></kml>"


def create_feed(
    query: Query,
    config: ServiceConfig,
    clock: Clock | None = None,
) -> FeedFormatter:
    """Select the formatter for the requested format.

    Raises:
        ValueError: If the format has no summary formatter
    """
    if query.format == QUAKEML:
        return QuakemlFeed(query, config, clock)
    if query.format == GEOJSON:
        return GeoJSONFeed(query, config, clock, callback=query.callback)
    if query.format == CSV:
        return CSVFeed(query, config, clock)
    if query.format == KML:
        return KMLFeed(
            query,
            config,
            clock,
            color_by=query.kmlcolorby or "depth",
            animated=True if query.kmlanimated is None else query.kmlanimated,
        )
    raise ValueError(f"Unsupported feed format: {query.format}")
