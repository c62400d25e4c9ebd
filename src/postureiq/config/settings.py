"""
Configuration settings management for PostureIQ.

This module handles loading, validating, and saving configuration settings
from YAML files with support for environment variable overrides.

Configuration is loaded from ~/.postureiq/config.yaml by default, with the
path overridable via the POSTUREIQ_CONFIG environment variable.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".postureiq"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"

DEFAULT_FRAMEWORK = "cis_v8"


@dataclass
class AssessmentConfig:
    """Assessment settings."""

    default_framework: str = DEFAULT_FRAMEWORK
    # Highest applicability tier in scope; None means every safeguard
    tier_filter: int | None = None
    # Treat a recorded compliance of exactly 0 as tracked compliance
    count_zero_compliance: bool = False


@dataclass
class FrameworkConfig:
    """Additional framework catalogs loaded alongside the built-ins."""

    catalog_paths: list[str] = field(default_factory=list)


@dataclass
class ReportingConfig:
    """Reporting settings."""

    organization: str = ""
    output_dir: str = str(DEFAULT_CONFIG_DIR / "reports")


@dataclass
class Settings:
    """
    Complete PostureIQ configuration settings.

    Settings are loaded from a YAML configuration file and can be overridden
    by environment variables prefixed with POSTUREIQ_.

    Attributes:
        data_dir: Directory holding the assessment state file.
        log_level: Logging verbosity (DEBUG, INFO, WARNING, ERROR).
        assessment: Scoring and maturity settings.
        frameworks: Extra catalog files.
        reporting: Report generation settings.
    """

    data_dir: str = str(DEFAULT_CONFIG_DIR / "data")
    log_level: str = "INFO"

    assessment: AssessmentConfig = field(default_factory=AssessmentConfig)
    frameworks: FrameworkConfig = field(default_factory=FrameworkConfig)
    reporting: ReportingConfig = field(default_factory=ReportingConfig)


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


def get_config_path() -> Path:
    """
    Get the configuration file path.

    Returns the path from POSTUREIQ_CONFIG environment variable if set,
    otherwise returns the default path (~/.postureiq/config.yaml).

    Returns:
        Path to the configuration file.
    """
    env_path = os.environ.get("POSTUREIQ_CONFIG")
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_FILE


def load_config(config_path: Path | None = None) -> Settings:
    """
    Load configuration from YAML file.

    Reads configuration from the specified path (or default if not provided),
    applies environment variable overrides, and validates the configuration.

    Args:
        config_path: Optional path to configuration file. If not provided,
                    uses POSTUREIQ_CONFIG environment variable or default path.

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If the configuration file cannot be read or
                          contains invalid settings.
    """
    if config_path is None:
        config_path = get_config_path()

    settings = Settings()

    if config_path.exists():
        try:
            with open(config_path) as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigurationError("Config file must contain a YAML mapping")

        settings = _apply_config_data(settings, config_data)

    settings = _apply_environment_overrides(settings)

    _validate_config(settings)

    return settings


def save_config(settings: Settings, config_path: Path | None = None) -> None:
    """
    Save configuration to YAML file.

    Args:
        settings: Settings instance to save.
        config_path: Optional path to configuration file.

    Raises:
        ConfigurationError: If the configuration cannot be written.
    """
    if config_path is None:
        config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    config_data = _settings_to_dict(settings)

    try:
        with open(config_path, "w") as f:
            yaml.safe_dump(config_data, f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        raise ConfigurationError(f"Cannot write config file: {e}") from e


def _parse_tier(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid tier_filter: {value!r}") from e


def _apply_config_data(settings: Settings, data: dict[str, Any]) -> Settings:
    """Apply configuration data from parsed YAML to settings."""
    core = data.get("postureiq") or {}

    if "data_dir" in core:
        settings.data_dir = str(core["data_dir"])
    if "log_level" in core:
        settings.log_level = str(core["log_level"]).upper()

    assessment = data.get("assessment") or {}
    if "default_framework" in assessment:
        settings.assessment.default_framework = str(assessment["default_framework"])
    if "tier_filter" in assessment:
        settings.assessment.tier_filter = _parse_tier(assessment["tier_filter"])
    if "count_zero_compliance" in assessment:
        settings.assessment.count_zero_compliance = bool(
            assessment["count_zero_compliance"]
        )

    frameworks = data.get("frameworks") or {}
    if "catalog_paths" in frameworks:
        settings.frameworks.catalog_paths = list(frameworks["catalog_paths"] or [])

    reporting = data.get("reporting") or {}
    if "organization" in reporting:
        settings.reporting.organization = str(reporting["organization"] or "")
    if "output_dir" in reporting:
        settings.reporting.output_dir = str(reporting["output_dir"])

    return settings


def _apply_environment_overrides(settings: Settings) -> Settings:
    """Apply environment variable overrides to settings."""
    env_map: dict[str, tuple[str, Callable[[str], Any]]] = {
        "POSTUREIQ_DATA_DIR": ("data_dir", str),
        "POSTUREIQ_LOG_LEVEL": ("log_level", lambda x: x.upper()),
        "POSTUREIQ_DEFAULT_FRAMEWORK": ("assessment.default_framework", str),
        "POSTUREIQ_TIER_FILTER": ("assessment.tier_filter", _parse_tier),
        "POSTUREIQ_CATALOG_PATHS": (
            "frameworks.catalog_paths",
            lambda x: [p.strip() for p in x.split(",") if p.strip()],
        ),
        "POSTUREIQ_ORGANIZATION": ("reporting.organization", str),
    }

    for env_var, (attr_path, converter) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            _set_nested_attr(settings, attr_path, converter(value))

    return settings


def _set_nested_attr(obj: Any, path: str, value: Any) -> None:
    """Set a nested attribute on an object using dot notation."""
    parts = path.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    setattr(obj, parts[-1], value)


def _validate_config(settings: Settings) -> None:
    """
    Validate configuration settings.

    Raises:
        ConfigurationError: If configuration is invalid.
    """
    valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if settings.log_level not in valid_log_levels:
        raise ConfigurationError(
            f"Invalid log_level: {settings.log_level}. "
            f"Must be one of: {', '.join(sorted(valid_log_levels))}"
        )

    tier = settings.assessment.tier_filter
    if tier is not None and tier < 1:
        raise ConfigurationError("tier_filter must be a positive integer or null")

    if not settings.assessment.default_framework:
        raise ConfigurationError("default_framework must not be empty")

    for path in settings.frameworks.catalog_paths:
        if not isinstance(path, str):
            raise ConfigurationError(f"Invalid catalog path: {path!r}")


def _settings_to_dict(settings: Settings) -> dict[str, Any]:
    """Convert Settings instance to dictionary for YAML serialization."""
    return {
        "postureiq": {
            "data_dir": settings.data_dir,
            "log_level": settings.log_level,
        },
        "assessment": {
            "default_framework": settings.assessment.default_framework,
            "tier_filter": settings.assessment.tier_filter,
            "count_zero_compliance": settings.assessment.count_zero_compliance,
        },
        "frameworks": {
            "catalog_paths": list(settings.frameworks.catalog_paths),
        },
        "reporting": {
            "organization": settings.reporting.organization,
            "output_dir": settings.reporting.output_dir,
        },
    }
