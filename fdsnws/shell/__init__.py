"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with external systems:
- Event indexes (in-memory catalog file, upstream FDSN service over HTTP)
- Configuration loading (environment/files)

Keep this layer thin and simple. All business logic should be in core.
"""

from fdsnws.shell.config_loader import load_config, load_config_from_env
from fdsnws.shell.factory import create_index
from fdsnws.shell.index import EventIndex
from fdsnws.shell.memory_index import MemoryEventIndex
from fdsnws.shell.upstream_index import UpstreamEventIndex

__all__ = [
    "load_config",
    "load_config_from_env",
    "create_index",
    "EventIndex",
    "MemoryEventIndex",
    "UpstreamEventIndex",
]
