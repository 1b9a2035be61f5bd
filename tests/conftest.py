"""
Pytest configuration and shared fixtures for the test suite.
"""

import json
import random
import shutil
from datetime import datetime, timezone
from pathlib import Path

import pytest

from steamcity_platform.config import (
    GeneratorConfig, LoggingConfig, QueryConfig, ServerConfig, StorageConfig, SystemConfig, set_config
)
from steamcity_platform.errors import set_error_handler
from steamcity_platform.query.engine import QueryEngine
from steamcity_platform.storage.json_store import JSONStore, set_store

SAMPLE_DATA_DIR = Path(__file__).parent.parent / "data"

# Two hours after the newest sample measurement
FIXED_NOW = datetime(2025, 11, 10, 14, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def data_dir(tmp_path):
    """Copy of the sample collections in a scratch directory."""
    target = tmp_path / "data"
    target.mkdir()
    for source in SAMPLE_DATA_DIR.glob("*.json"):
        shutil.copy(source, target / source.name)
    return target


@pytest.fixture
def temp_config_file(tmp_path):
    """Create a temporary configuration file for testing."""
    config_data = {
        "storage": {
            "data_dir": str(tmp_path / "custom-data"),
            "measurements_file": "readings.json"
        },
        "server": {
            "host": "127.0.0.1",
            "port": 8080
        },
        "query": {
            "default_page_size": 25,
            "max_page_size": 500
        },
        "generator": {
            "seed": 7,
            "days": 3
        },
        "logging": {
            "level": "DEBUG",
            "format": "text"
        }
    }

    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(config_data), encoding="utf-8")
    return str(config_file)


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set up mock environment variables for testing."""
    env_vars = {
        "STEAMCITY_DATA_DIR": "/srv/steamcity",
        "HOST": "127.0.0.1",
        "PORT": "4000",
        "DEFAULT_PAGE_SIZE": "20",
        "GENERATOR_SEED": "99",
        "LOG_LEVEL": "DEBUG"
    }

    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)

    return env_vars


@pytest.fixture(autouse=True)
def test_config(data_dir):
    """Automatically point the global configuration and store at the sample data."""
    config = SystemConfig(
        storage=StorageConfig(data_dir=str(data_dir)),
        server=ServerConfig(host="127.0.0.1", port=3000),
        query=QueryConfig(),
        generator=GeneratorConfig(seed=1234, days=2, interval_hours=6, experiments_per_protocol=1),
        logging=LoggingConfig(level="DEBUG", format="json")
    )

    set_config(config)
    set_store(JSONStore(config.storage))

    yield config

    # Cleanup - reset to None
    set_config(None)
    set_store(None)
    set_error_handler(None)


@pytest.fixture
def store(test_config):
    return JSONStore(test_config.storage)


@pytest.fixture
def engine(store, test_config):
    """Query engine with a frozen clock and a seeded random source."""
    return QueryEngine(store=store, config=test_config.query,
                       clock=lambda: FIXED_NOW, rng=random.Random(42))
