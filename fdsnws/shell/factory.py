"""Builds the configured event index."""

import logging

from fdsnws.core.config import ServiceConfig
from fdsnws.shell.index import EventIndex
from fdsnws.shell.memory_index import MemoryEventIndex
from fdsnws.shell.upstream_index import UpstreamEventIndex


logger = logging.getLogger(__name__)


def create_index(config: ServiceConfig) -> EventIndex:
    """Create the event index selected by ``config.index_backend``.

    Raises:
        ValueError: If the backend is unknown or misconfigured
    """
    if config.index_backend == "upstream":
        if not config.upstream_url:
            raise ValueError("upstream_url is required for the upstream index backend")
        logger.info("Using upstream index at %s", config.upstream_url)
        return UpstreamEventIndex(
            base_url=config.upstream_url,
            page_size=config.upstream_page_size,
        )

    if config.index_backend == "memory":
        if config.events_file:
            return MemoryEventIndex.from_file(config.events_file)
        logger.warning("No events_file configured, serving an empty catalog")
        return MemoryEventIndex()

    raise ValueError(f"Unknown index backend: {config.index_backend}")
