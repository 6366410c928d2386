"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

The model (ServiceConfig) is defined in fdsnws/core/config.py.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from fdsnws.core.config import (
    DEFAULT_FDSN_PATH,
    DEFAULT_FEED_PATH,
    DEFAULT_SERVICE_LIMIT,
    ServiceConfig,
    validate_config,
)


logger = logging.getLogger(__name__)


def _resolve_value(value: Any) -> Any:
    """Resolve a ``${VAR}`` environment placeholder.

    Args:
        value: Value to resolve (may be a ${...} placeholder)

    Returns:
        Resolved value, or the value unchanged if not a placeholder
    """
    if not isinstance(value, str):
        return value

    if value.startswith("${") and value.endswith("}"):
        var_name = value[2:-1]
        env_value = os.environ.get(var_name)
        if env_value:
            return env_value
        logger.warning("Environment variable %s not set", var_name)

    return value


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def load_config_from_dict(data: dict[str, Any]) -> ServiceConfig:
    """Load configuration from a dictionary.

    This is a pure-ish function (only env var expansion has side effects).

    Args:
        data: Configuration dictionary

    Returns:
        Parsed ServiceConfig object
    """
    data = {key: _resolve_value(value) for key, value in data.items()}

    return ServiceConfig(
        version=str(data.get("version", "1.0.0")),
        service_limit=int(data.get("service_limit", DEFAULT_SERVICE_LIMIT)),
        default_max_event_age=_optional_int(data.get("default_max_event_age")),
        host_url_prefix=data.get("host_url_prefix", "http://localhost:8000"),
        fdsn_path=data.get("fdsn_path", DEFAULT_FDSN_PATH),
        feed_path=data.get("feed_path", DEFAULT_FEED_PATH),
        index_backend=data.get("index_backend", "memory"),
        events_file=data.get("events_file"),
        upstream_url=data.get("upstream_url"),
        upstream_page_size=int(data.get("upstream_page_size", 1000)),
    )


def _log_validation(config: ServiceConfig) -> None:
    result = validate_config(config)
    for error in result.errors:
        log = logger.error if error.severity == "error" else logger.warning
        log("Config %s: %s", error.field, error.message)


def load_config(config_path: str | Path | None = None) -> ServiceConfig:
    """Load configuration from a YAML file.

    This method performs file I/O.

    Args:
        config_path: Path to YAML config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed ServiceConfig object

    Raises:
        yaml.YAMLError: If config file is invalid YAML
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config/config.yaml")

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using environment", path)
        return load_config_from_env()

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using defaults")
        return ServiceConfig()

    config = load_config_from_dict(data)
    _log_validation(config)

    logger.info(
        "Loaded config: version %s, service limit %d, %s index",
        config.version,
        config.service_limit,
        config.index_backend,
    )

    return config


def load_config_from_env() -> ServiceConfig:
    """Load configuration from environment variables.

    Useful for simple deployments without a YAML file.

    Environment variables:
        FDSN_VERSION: Service version string
        MAX_SEARCH: Service result limit
        DEFAULT_MAXEVENTAGE: Default lookback in seconds when no starttime
        HOST_URL_PREFIX: Scheme and host for absolute URLs
        FDSN_PATH: FDSN event service path prefix
        FEED_PATH: Legacy feed path prefix
        INDEX_BACKEND: 'memory' or 'upstream'
        EVENTS_FILE: GeoJSON file for the memory index
        UPSTREAM_URL: Upstream FDSN service base URL

    Returns:
        ServiceConfig object from environment
    """
    env = os.environ
    config = ServiceConfig(
        version=env.get("FDSN_VERSION", "1.0.0"),
        service_limit=int(env.get("MAX_SEARCH", str(DEFAULT_SERVICE_LIMIT))),
        default_max_event_age=_optional_int(env.get("DEFAULT_MAXEVENTAGE")),
        host_url_prefix=env.get("HOST_URL_PREFIX", "http://localhost:8000"),
        fdsn_path=env.get("FDSN_PATH", DEFAULT_FDSN_PATH),
        feed_path=env.get("FEED_PATH", DEFAULT_FEED_PATH),
        index_backend=env.get("INDEX_BACKEND", "memory"),
        events_file=env.get("EVENTS_FILE"),
        upstream_url=env.get("UPSTREAM_URL"),
        upstream_page_size=int(env.get("UPSTREAM_PAGE_SIZE", "1000")),
    )
    _log_validation(config)
    return config
