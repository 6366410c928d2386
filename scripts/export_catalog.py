#!/usr/bin/env python3
"""Export events from an upstream FDSN service into a GeoJSON catalog file.

The file can be served by the in-memory index (``index_backend: memory``,
``events_file: <path>``). Search parameters use the same names and
validation as the web service.

Usage:
    python scripts/export_catalog.py out.geojson starttime=2024-01-01 minmagnitude=4.5
    python scripts/export_catalog.py out.geojson --upstream https://example.org/fdsnws/event/1 limit=100
"""

import argparse
import json
import logging
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fdsnws.core.config import ServiceConfig
from fdsnws.core.errors import ErrorReporter, ServiceError
from fdsnws.core.feeds import event_to_feature
from fdsnws.core.validation import ParameterValidator
from fdsnws.shell.upstream_index import USGS_FDSN_BASE, UpstreamEventIndex

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def parse_params(pairs: list[str]) -> dict[str, str]:
    """Split NAME=VALUE arguments."""
    params = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep:
            raise ValueError(f"Expected NAME=VALUE, got {pair!r}")
        params[name] = value
    return params


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Export events from an upstream FDSN service to GeoJSON",
    )
    parser.add_argument("output", help="GeoJSON file to write")
    parser.add_argument(
        "params",
        nargs="*",
        help="Search parameters as NAME=VALUE (e.g. minmagnitude=4.5)",
    )
    parser.add_argument(
        "--upstream",
        type=str,
        default=USGS_FDSN_BASE,
        help=f"Upstream service base URL (default: {USGS_FDSN_BASE})",
    )
    parser.add_argument(
        "--page-size",
        type=int,
        default=1000,
        help="Events per upstream request (default: 1000)",
    )
    args = parser.parse_args()

    try:
        params = parse_params(args.params)
    except ValueError as e:
        parser.error(str(e))

    index = UpstreamEventIndex(base_url=args.upstream, page_size=args.page_size)
    config = ServiceConfig()
    validator = ParameterValidator(config, index)

    try:
        query = validator.parse_query(params, ErrorReporter(config, " ".join(args.params)))
    except ServiceError as e:
        logger.error("Invalid search:\n%s", e.body or e.status)
        return 2

    count = index.get_event_count(query)
    logger.info("Upstream reports %d matching events", count)

    written = 0
    with open(args.output, "w") as f:
        f.write('{"type":"FeatureCollection","features":[')
        with index.events(query) as events:
            for event in events:
                if written:
                    f.write(",")
                json.dump(event_to_feature(event, config), f)
                written += 1
        f.write("]}")

    logger.info("Wrote %d events to %s", written, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
