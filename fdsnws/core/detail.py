"""Detail renderers - single event output per format.

Renderers are selected by format name. Each takes the resolved event and
returns (content type, complete body). Pure functions.
"""

import json
from datetime import datetime, timedelta
from email.utils import formatdate
from typing import Any, Callable

from fdsnws.core.config import ServiceConfig
from fdsnws.core.event import Event, Product
from fdsnws.core.feeds import CSVFeed, FeedFormatter, KMLFeed, event_to_feature
from fdsnws.core.query import Query


# Recent events are still being revised, cache them briefly
RECENT_EVENT_AGE = timedelta(days=7)
RECENT_CACHE_MAX_AGE = 60
DEFAULT_CACHE_MAX_AGE = 900

# Embeddable variant of the geojson detail format
GEOJSONP = "geojsonp"

Renderer = Callable[[Event, Query, ServiceConfig], tuple[str, str]]


def cache_max_age(event: Event, now: datetime) -> int:
    """Seconds a detail response may be cached.

    Pure function.
    """
    if now - event.origin_time < RECENT_EVENT_AGE:
        return RECENT_CACHE_MAX_AGE
    return DEFAULT_CACHE_MAX_AGE


def product_to_dict(product: Product) -> dict[str, Any]:
    return {
        "id": product.id,
        "type": product.type,
        "code": product.code,
        "source": product.source,
        "updateTime": product.update_time,
        "status": product.status,
        "properties": dict(product.properties),
        "preferredWeight": product.preferred_weight,
        "contents": {
            path: {
                "contentType": content.content_type,
                "lastModified": content.last_modified,
                "length": content.length,
                "url": content.url,
            }
            for path, content in product.contents.items()
        },
    }


def event_to_detail_feature(event: Event, config: ServiceConfig) -> dict[str, Any]:
    """Summary feature plus every contributed product, grouped by type.

    Products of the same type are listed most preferred first.
    """
    feature = event_to_feature(event, config)
    del feature["properties"]["detail"]

    products: dict[str, list[dict[str, Any]]] = {}
    ordered = sorted(event.products, key=lambda p: p.preferred_weight, reverse=True)
    for product in ordered:
        products.setdefault(product.type, []).append(product_to_dict(product))
    feature["properties"]["products"] = products
    return feature


def render_geojson(event: Event, query: Query, config: ServiceConfig) -> tuple[str, str]:
    return "application/json", json.dumps(event_to_detail_feature(event, config))


def render_geojsonp(event: Event, query: Query, config: ServiceConfig) -> tuple[str, str]:
    _, body = render_geojson(event, query, config)
    return "text/javascript", f"{query.callback}({body});"


def _render_single(feed: FeedFormatter, event: Event) -> tuple[str, str]:
    return feed.content_type, feed.begin() + feed.write(event) + feed.end()


def render_csv(event: Event, query: Query, config: ServiceConfig) -> tuple[str, str]:
    return _render_single(CSVFeed(query, config), event)


def render_kml(event: Event, query: Query, config: ServiceConfig) -> tuple[str, str]:
    feed = KMLFeed(
        query,
        config,
        color_by=query.kmlcolorby or "depth",
        animated=query.kmlanimated is not False,
    )
    return _render_single(feed, event)


DETAIL_RENDERERS: dict[str, Renderer] = {
    "geojson": render_geojson,
    GEOJSONP: render_geojsonp,
    "csv": render_csv,
    "kml": render_kml,
}


def cache_headers(max_age: int, now: datetime) -> dict[str, str]:
    """HTTP cache directives for a detail response."""
    return {
        "Cache-Control": f"max-age={max_age}",
        "Expires": formatdate(now.timestamp() + max_age, usegmt=True),
    }
