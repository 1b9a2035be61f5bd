"""
Configuration management for the SteamCity platform.

This module provides configuration classes and utilities for managing
storage locations, server settings, query defaults, synthetic data generation
and logging.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional
import json

from .errors import ConfigurationError, create_error_context


COLLECTION_KINDS = ("clusters", "protocols", "experiments", "sensors", "measurements")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("json", "text")


def _env_int(name: str) -> Optional[int]:
    """Integer environment variable, or None when unset or empty."""
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(
            f"Environment variable {name} must be an integer, got {raw!r}",
            context=create_error_context("load_config", setting=name)
        )


@dataclass
class StorageConfig:
    """Flat JSON storage settings."""
    data_dir: str = "data"
    clusters_file: str = "clusters.json"
    protocols_file: str = "protocols.json"
    experiments_file: str = "experiments.json"
    sensors_file: str = "sensors.json"
    measurements_file: str = "measurements.json"
    indent: int = 2

    @property
    def files(self) -> Dict[str, str]:
        """Map each collection kind to its file name."""
        return {
            "clusters": self.clusters_file,
            "protocols": self.protocols_file,
            "experiments": self.experiments_file,
            "sensors": self.sensors_file,
            "measurements": self.measurements_file,
        }

    def path_for(self, kind: str) -> Path:
        """Resolve the file path backing a collection kind."""
        return Path(self.data_dir) / self.files[kind]


@dataclass
class ServerConfig:
    """HTTP server settings."""
    host: str = "0.0.0.0"
    port: int = 3000
    reload: bool = False
    workers: int = 1


@dataclass
class QueryConfig:
    """Defaults applied by the query layer."""
    default_page_size: int = 50
    max_page_size: int = 1000
    measurement_limit: int = 1000
    diverse_limit: int = 200


@dataclass
class GeneratorConfig:
    """Synthetic data generation settings."""
    seed: Optional[int] = None
    days: int = 30
    interval_hours: int = 2
    experiments_per_protocol: int = 3


@dataclass
class LoggingConfig:
    """Logging system configuration."""
    level: str = "INFO"
    format: str = "json"
    log_file: Optional[str] = None
    max_file_size_mb: int = 100
    backup_count: int = 5
    structured: bool = True


@dataclass
class SystemConfig:
    """Main system configuration combining all subsystem configs."""
    storage: StorageConfig = field(default_factory=StorageConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    query: QueryConfig = field(default_factory=QueryConfig)
    generator: GeneratorConfig = field(default_factory=GeneratorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "SystemConfig":
        """
        Create configuration from environment variables.

        Raises:
            ConfigurationError: If a variable holds an unusable value
        """
        config = cls()

        if os.getenv("STEAMCITY_DATA_DIR"):
            config.storage.data_dir = os.getenv("STEAMCITY_DATA_DIR")

        if os.getenv("HOST"):
            config.server.host = os.getenv("HOST")
        port = _env_int("PORT")
        if port is not None:
            config.server.port = port

        page_size = _env_int("DEFAULT_PAGE_SIZE")
        if page_size is not None:
            config.query.default_page_size = page_size

        seed = _env_int("GENERATOR_SEED")
        if seed is not None:
            config.generator.seed = seed

        if os.getenv("LOG_LEVEL"):
            config.logging.level = os.getenv("LOG_LEVEL")
        if os.getenv("LOG_FILE"):
            config.logging.log_file = os.getenv("LOG_FILE")
        if os.getenv("LOG_FORMAT"):
            config.logging.format = os.getenv("LOG_FORMAT")

        config.validate()
        return config

    @classmethod
    def from_file(cls, config_path: str) -> "SystemConfig":
        """
        Load configuration from JSON file.

        Raises:
            ConfigurationError: If the file cannot be read, is not a JSON
                object, or holds unusable values
        """
        try:
            with open(config_path, 'r') as f:
                config_data = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigurationError(
                f"Cannot read configuration file {config_path}: {e}",
                context=create_error_context("load_config", file_path=str(config_path)),
                original_exception=e
            )
        if not isinstance(config_data, dict):
            raise ConfigurationError(
                f"Configuration file {config_path} must contain a JSON object",
                context=create_error_context("load_config", file_path=str(config_path))
            )

        config = cls()

        for section in ("storage", "server", "query", "generator", "logging"):
            if section in config_data:
                target = getattr(config, section)
                for key, value in config_data[section].items():
                    if hasattr(target, key):
                        setattr(target, key, value)

        config.validate()
        return config

    def validate(self) -> None:
        """
        Check settings that would otherwise fail later at startup.

        Raises:
            ConfigurationError: Naming the first unusable setting
        """
        problems = []

        if not isinstance(self.server.port, int) or not 0 < self.server.port < 65536:
            problems.append(f"server.port must be between 1 and 65535, got {self.server.port!r}")
        for name in ("default_page_size", "max_page_size", "measurement_limit", "diverse_limit"):
            value = getattr(self.query, name)
            if not isinstance(value, int) or value < 1:
                problems.append(f"query.{name} must be a positive integer, got {value!r}")
        if str(self.logging.level).upper() not in LOG_LEVELS:
            problems.append(f"logging.level must be one of {', '.join(LOG_LEVELS)}, got {self.logging.level!r}")
        if str(self.logging.format).lower() not in LOG_FORMATS:
            problems.append(f"logging.format must be one of {', '.join(LOG_FORMATS)}, got {self.logging.format!r}")

        if problems:
            raise ConfigurationError(
                "Invalid configuration: " + "; ".join(problems),
                context=create_error_context("validate_config", problems=problems)
            )

    def to_file(self, config_path: str) -> None:
        """Save configuration to JSON file."""
        config_data = {
            "storage": {
                "data_dir": self.storage.data_dir,
                "clusters_file": self.storage.clusters_file,
                "protocols_file": self.storage.protocols_file,
                "experiments_file": self.storage.experiments_file,
                "sensors_file": self.storage.sensors_file,
                "measurements_file": self.storage.measurements_file,
                "indent": self.storage.indent
            },
            "server": {
                "host": self.server.host,
                "port": self.server.port,
                "reload": self.server.reload,
                "workers": self.server.workers
            },
            "query": {
                "default_page_size": self.query.default_page_size,
                "max_page_size": self.query.max_page_size,
                "measurement_limit": self.query.measurement_limit,
                "diverse_limit": self.query.diverse_limit
            },
            "generator": {
                "seed": self.generator.seed,
                "days": self.generator.days,
                "interval_hours": self.generator.interval_hours,
                "experiments_per_protocol": self.generator.experiments_per_protocol
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "log_file": self.logging.log_file,
                "max_file_size_mb": self.logging.max_file_size_mb,
                "backup_count": self.logging.backup_count
            }
        }

        with open(config_path, 'w') as f:
            json.dump(config_data, f, indent=2)


# Global configuration instance
_config: Optional[SystemConfig] = None


def get_config() -> SystemConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = SystemConfig.from_env()
    return _config


def set_config(config: Optional[SystemConfig]) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def load_config_from_file(config_path: str) -> SystemConfig:
    """Load and set configuration from file."""
    config = SystemConfig.from_file(config_path)
    set_config(config)
    return config
