"""
Configuration management for PostureIQ.

This module handles loading, validating, and saving configuration settings.
"""

from postureiq.config.settings import (
    ConfigurationError,
    Settings,
    get_config_path,
    load_config,
    save_config,
)

__all__ = [
    "Settings",
    "load_config",
    "save_config",
    "get_config_path",
    "ConfigurationError",
]
