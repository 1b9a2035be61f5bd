"""
Unit tests for configuration management.
"""

import json

import pytest

from steamcity_platform.config import (
    COLLECTION_KINDS, GeneratorConfig, LoggingConfig, QueryConfig, ServerConfig, StorageConfig,
    SystemConfig, get_config, load_config_from_file, set_config
)
from steamcity_platform.errors import ConfigurationError, ErrorCategory, ErrorSeverity


class TestStorageConfig:
    """Test storage configuration."""

    def test_default_values(self):
        """Test default storage configuration values."""
        config = StorageConfig()
        assert config.data_dir == "data"
        assert config.protocols_file == "protocols.json"
        assert config.indent == 2

    def test_every_kind_has_a_file(self):
        config = StorageConfig(data_dir="/srv/data", sensors_file="devices.json")

        assert set(config.files) == set(COLLECTION_KINDS)
        assert config.path_for("sensors").as_posix() == "/srv/data/devices.json"


class TestSubsystemDefaults:
    """Test defaults of the remaining sections."""

    def test_server_defaults(self):
        config = ServerConfig()
        assert config.port == 3000
        assert config.reload is False
        assert config.workers == 1

    def test_query_defaults(self):
        config = QueryConfig()
        assert config.default_page_size == 50
        assert config.max_page_size == 1000
        assert config.measurement_limit == 1000
        assert config.diverse_limit == 200

    def test_generator_defaults(self):
        config = GeneratorConfig()
        assert config.seed is None
        assert config.days == 30
        assert config.interval_hours == 2
        assert config.experiments_per_protocol == 3

    def test_logging_defaults(self):
        config = LoggingConfig()
        assert config.level == "INFO"
        assert config.format == "json"
        assert config.log_file is None


class TestSystemConfig:
    """Test system configuration functionality."""

    def test_from_env(self, mock_env_vars):
        """Test configuration loading from environment variables."""
        config = SystemConfig.from_env()

        assert config.storage.data_dir == "/srv/steamcity"
        assert config.server.host == "127.0.0.1"
        assert config.server.port == 4000
        assert config.query.default_page_size == 20
        assert config.generator.seed == 99
        assert config.logging.level == "DEBUG"

    def test_from_file(self, temp_config_file):
        """Test configuration loading from JSON file."""
        config = SystemConfig.from_file(temp_config_file)

        assert config.storage.data_dir.endswith("custom-data")
        assert config.storage.measurements_file == "readings.json"
        assert config.storage.clusters_file == "clusters.json"
        assert config.server.port == 8080
        assert config.query.max_page_size == 500
        assert config.generator.seed == 7
        assert config.logging.format == "text"

    def test_from_file_ignores_unknown_keys(self, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"server": {"port": 9000, "tls": True}, "auth": {}}), encoding="utf-8")

        config = SystemConfig.from_file(str(config_file))

        assert config.server.port == 9000
        assert not hasattr(config.server, "tls")

    def test_to_file_round_trip(self, test_config, tmp_path):
        """Test configuration saving to JSON file."""
        target = tmp_path / "saved.json"
        test_config.to_file(str(target))

        saved_data = json.loads(target.read_text(encoding="utf-8"))
        assert saved_data["storage"]["data_dir"] == test_config.storage.data_dir
        assert saved_data["generator"]["seed"] == 1234

        reloaded = SystemConfig.from_file(str(target))
        assert reloaded.generator.interval_hours == 6
        assert reloaded.server.port == test_config.server.port


class TestConfigValidation:
    """Test rejection of unusable settings."""

    @pytest.mark.parametrize("name,value", [
        ("PORT", "http"),
        ("DEFAULT_PAGE_SIZE", "ten"),
        ("GENERATOR_SEED", "1.5"),
    ])
    def test_non_integer_env_var(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        with pytest.raises(ConfigurationError) as exc_info:
            SystemConfig.from_env()

        assert name in exc_info.value.message
        assert exc_info.value.category == ErrorCategory.CONFIGURATION
        assert exc_info.value.severity == ErrorSeverity.CRITICAL

    @pytest.mark.parametrize("name,value", [("PORT", "70000"), ("LOG_LEVEL", "LOUD"), ("LOG_FORMAT", "xml")])
    def test_out_of_range_env_var(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            SystemConfig.from_env()

    def test_lowercase_log_level_accepted(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        assert SystemConfig.from_env().logging.level == "warning"

    def test_file_with_bad_values(self, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"query": {"default_page_size": 0}}), encoding="utf-8")

        with pytest.raises(ConfigurationError) as exc_info:
            SystemConfig.from_file(str(config_file))

        assert "query.default_page_size" in exc_info.value.message

    @pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
    def test_unparsable_file(self, tmp_path, content):
        config_file = tmp_path / "config.json"
        config_file.write_text(content, encoding="utf-8")

        with pytest.raises(ConfigurationError):
            SystemConfig.from_file(str(config_file))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            SystemConfig.from_file(str(tmp_path / "absent.json"))

        assert isinstance(exc_info.value.original_exception, FileNotFoundError)


class TestGlobalConfig:
    """Test global configuration management."""

    def test_get_config_default(self, monkeypatch):
        """Test getting default global configuration."""
        monkeypatch.delenv("STEAMCITY_DATA_DIR", raising=False)
        monkeypatch.delenv("PORT", raising=False)
        set_config(None)

        config = get_config()

        assert isinstance(config, SystemConfig)
        assert config.storage.data_dir == "data"
        assert config.server.port == 3000

    def test_set_and_get_config(self, test_config):
        set_config(test_config)
        assert get_config() is test_config

    def test_load_config_from_file(self, temp_config_file):
        """Test loading global configuration from file."""
        config = load_config_from_file(temp_config_file)

        assert get_config() is config
        assert get_config().query.default_page_size == 25
