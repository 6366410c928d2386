"""Unit tests for configuration validation.

Pure function tests - no mocks needed, fast execution.
"""

from fdsnws.core.config import ServiceConfig, validate_config


class TestServiceConfig:
    """Tests for ServiceConfig derived URLs."""

    def test_defaults(self):
        config = ServiceConfig()

        assert config.service_limit == 20000
        assert config.default_max_event_age is None
        assert config.service_url == "http://localhost:8000/fdsnws/event/1"
        assert config.feed_url == "http://localhost:8000/earthquakes/feed/v1.0"

    def test_custom_prefix(self):
        config = ServiceConfig(host_url_prefix="https://quake.example", fdsn_path="/fdsn")
        assert config.service_url == "https://quake.example/fdsn"


class TestValidateConfig:
    """Tests for validate_config()."""

    def test_valid_memory_config(self):
        result = validate_config(ServiceConfig(events_file="events.geojson"))

        assert result.valid
        assert result.errors == []

    def test_missing_events_file_is_warning(self):
        result = validate_config(ServiceConfig())

        assert result.valid
        assert [w.field for w in result.warnings] == ["events_file"]

    def test_non_positive_service_limit(self):
        result = validate_config(ServiceConfig(service_limit=0, events_file="e"))

        assert not result.valid
        assert result.critical_errors[0].field == "service_limit"

    def test_negative_max_age(self):
        result = validate_config(ServiceConfig(default_max_event_age=-1, events_file="e"))
        assert [e.field for e in result.critical_errors] == ["default_max_event_age"]

    def test_bad_paths(self):
        result = validate_config(
            ServiceConfig(fdsn_path="fdsn", feed_path="/feed/", events_file="e")
        )
        assert [e.field for e in result.critical_errors] == ["fdsn_path", "feed_path"]

    def test_unknown_backend(self):
        result = validate_config(ServiceConfig(index_backend="sql"))

        assert not result.valid
        assert "sql" in result.critical_errors[0].message

    def test_upstream_requires_url(self):
        result = validate_config(ServiceConfig(index_backend="upstream"))
        assert [e.field for e in result.critical_errors] == ["upstream_url"]

    def test_upstream_page_size(self):
        result = validate_config(ServiceConfig(
            index_backend="upstream",
            upstream_url="https://example.org/fdsnws/event/1",
            upstream_page_size=0,
        ))
        assert [e.field for e in result.critical_errors] == ["upstream_page_size"]

    def test_empty_version_warns(self):
        result = validate_config(ServiceConfig(version="", events_file="e"))

        assert result.valid
        assert [w.field for w in result.warnings] == ["version"]
