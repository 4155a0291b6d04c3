"""Configuration module for NetKV."""

from .settings import ConfigError, Settings, load_properties, settings

__all__ = ["ConfigError", "Settings", "load_properties", "settings"]
