"""
NetKV Configuration Settings

This module contains all configuration for the NetKV server.

Values come from three layers, lowest priority first:
    1. Environment variables (NETKV_*) with built-in defaults
    2. A Java-style ``.properties`` file (see ``load_properties``)
    3. Command line flags (applied in ``netkv.server``)
"""

import configparser
import os
from dataclasses import dataclass, replace
from typing import Optional


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or holds bad values."""


SYNC_POLICIES = ("always", "flush")


@dataclass
class Settings:
    """Server configuration settings."""

    # Network settings
    HOST: str = os.environ.get("NETKV_HOST", "0.0.0.0")
    PORT: int = int(os.environ.get("NETKV_PORT", "7171"))

    # Persistence settings
    DATA_FILE: str = os.environ.get("NETKV_DATA_FILE", "data/netkv.aof")
    SYNC_POLICY: str = os.environ.get("NETKV_SYNC_POLICY", "always")

    # Connection settings
    WORKERS: int = int(os.environ.get("NETKV_WORKERS", "10"))
    READ_BUFFER_SIZE: int = 64 * 1024
    CONNECTION_TIMEOUT: int = 0  # Seconds before idle connection is closed, 0 = never

    # Logging settings
    LOG_FILE: Optional[str] = os.environ.get("NETKV_LOG_FILE") or None
    DEBUG: bool = os.environ.get("NETKV_DEBUG", "false").lower() == "true"


# Keys understood in a .properties file, mapped to Settings fields
PROPERTY_KEYS = {
    "server.host": ("HOST", str),
    "server.port": ("PORT", int),
    "server.workers": ("WORKERS", int),
    "log.file.path": ("LOG_FILE", str),
    "data.persist.file.path": ("DATA_FILE", str),
    "data.persist.sync": ("SYNC_POLICY", str),
}


def load_properties(path: str, base: Optional[Settings] = None) -> Settings:
    """
    Load settings from a ``.properties`` file.

    The file holds ``key=value`` lines, e.g.::

        server.port=7171
        log.file.path=logs/server.log
        data.persist.file.path=data/netkv.aof

    Unknown keys are ignored.

    Args:
        path: Path of the properties file
        base: Settings to start from (default: the module-level settings)

    Returns:
        A new Settings instance with the file's values applied

    Raises:
        ConfigError: If the file cannot be read or a value is invalid
    """
    parser = configparser.ConfigParser(interpolation=None, delimiters=("=", ":"))
    parser.optionxform = str  # keep keys case-sensitive

    try:
        with open(path, "r", encoding="utf-8") as f:
            parser.read_string("[properties]\n" + f.read(), source=path)
    except (OSError, configparser.Error) as e:
        raise ConfigError(f"Failed to load configuration {path}: {e}") from e

    overrides = {}
    for key, raw in parser["properties"].items():
        if key not in PROPERTY_KEYS:
            continue
        field_name, convert = PROPERTY_KEYS[key]
        try:
            overrides[field_name] = convert(raw.strip())
        except ValueError as e:
            raise ConfigError(f"Invalid value for {key}: {raw!r}") from e

    result = replace(base if base is not None else settings, **overrides)
    validate(result)
    return result


def validate(config: Settings) -> None:
    """Raise ConfigError if settings are out of range."""
    if not 0 <= config.PORT <= 65535:
        raise ConfigError(f"Invalid port: {config.PORT}")
    if config.WORKERS < 1:
        raise ConfigError(f"Invalid worker count: {config.WORKERS}")
    if config.SYNC_POLICY not in SYNC_POLICIES:
        raise ConfigError(
            f"Invalid sync policy {config.SYNC_POLICY!r}, expected one of {SYNC_POLICIES}"
        )


# Global settings instance
settings = Settings()
