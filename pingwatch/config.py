# Copyright 2025 icecake0141
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# This file was created or modified with the assistance of an AI (Large Language Model).
# Review required for correctness, security, and licensing.

"""
Configuration support for PingWatch.

This module defines the MonitorConfig value consumed by the engine and loads
settings from ~/.pingwatch.conf in either YAML or INI format.

A configuration problem never blocks startup: an unreadable file, a malformed
file or a bad individual value is logged as a warning and the documented default
is used instead.
"""

import configparser
import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, List, Optional

import yaml

from pingwatch.history import DEFAULT_HISTORY_LENGTH
from pingwatch.thresholds import Thresholds

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.expanduser("~/.pingwatch.conf")

PANEL_POSITIONS = ("right", "left")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True)
class MonitorConfig:
    """
    Read-only settings snapshot consumed by the engine.

    Intervals and thresholds are in milliseconds; ping_timeout is in seconds.
    """

    target_host: str = "1.1.1.1"
    ping_interval_ms: int = 1000
    display_interval_ms: int = 5000
    ping_timeout: int = 2
    history_length: int = DEFAULT_HISTORY_LENGTH
    threshold_low: int = 50
    threshold_medium: int = 100
    threshold_high: int = 200
    show_axis_labels: bool = True
    panel_position: str = "right"
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @property
    def thresholds(self) -> Thresholds:
        """Threshold triple for the classifier."""
        return Thresholds(self.threshold_low, self.threshold_medium, self.threshold_high)

    @property
    def ping_interval(self) -> float:
        """Probe interval in seconds."""
        return self.ping_interval_ms / 1000.0

    @property
    def display_interval(self) -> float:
        """Display refresh interval in seconds."""
        return self.display_interval_ms / 1000.0

    def with_changes(self, **changes: Any) -> "MonitorConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


DEFAULT_CONFIG = MonitorConfig()

# Mapping of config field names to their expected Python types
_CONFIG_FIELD_TYPES: Dict[str, type] = {
    "target_host": str,
    "ping_interval_ms": int,
    "display_interval_ms": int,
    "ping_timeout": int,
    "history_length": int,
    "threshold_low": int,
    "threshold_medium": int,
    "threshold_high": int,
    "show_axis_labels": bool,
    "panel_position": str,
    "log_level": str,
    "log_file": str,
}

_POSITIVE_INT_FIELDS = frozenset(
    (
        "ping_interval_ms",
        "display_interval_ms",
        "ping_timeout",
        "history_length",
        "threshold_low",
        "threshold_medium",
        "threshold_high",
    )
)

_BOOL_TRUE_VALUES = frozenset(("true", "yes", "1", "on"))
_BOOL_FALSE_VALUES = frozenset(("false", "no", "0", "off"))


def _parse_bool(value: str) -> bool:
    """Parse a boolean value from a string representation."""
    lower = value.strip().lower()
    if lower in _BOOL_TRUE_VALUES:
        return True
    if lower in _BOOL_FALSE_VALUES:
        return False
    raise ValueError(f"Cannot parse '{value}' as a boolean. Use true/false, yes/no, 1/0, or on/off.")


def _coerce_field(key: str, raw_value: Any) -> Any:
    """Coerce a raw config value to the expected type for the given field name."""
    if key not in _CONFIG_FIELD_TYPES:
        return raw_value
    field_type = _CONFIG_FIELD_TYPES[key]
    if field_type is bool:
        if isinstance(raw_value, bool):
            return raw_value
        return _parse_bool(str(raw_value))
    if field_type is int and isinstance(raw_value, bool):
        raise ValueError(f"Invalid value for config field '{key}': expected int, got {raw_value!r}")
    if isinstance(raw_value, field_type):
        return raw_value
    try:
        if field_type is int:
            return int(str(raw_value).strip())
        return field_type(raw_value)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Invalid value for config field '{key}': expected {field_type.__name__}, got {raw_value!r}") from exc


def _validate_field(key: str, value: Any) -> Any:
    """Check range and choice constraints; raise ValueError on violation."""
    if key in _POSITIVE_INT_FIELDS and value <= 0:
        raise ValueError(f"Config field '{key}' must be a positive integer, got {value!r}")
    if key == "target_host":
        value = value.strip()
        if not value:
            raise ValueError("Config field 'target_host' must not be empty")
    if key == "panel_position" and value not in PANEL_POSITIONS:
        raise ValueError(f"Config field 'panel_position' must be one of {', '.join(PANEL_POSITIONS)}, got {value!r}")
    if key == "log_level":
        value = value.upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"Config field 'log_level' must be one of {', '.join(LOG_LEVELS)}, got {value!r}")
    return value


def _collect_fields(items: Any, path: str, section: str) -> Dict[str, Any]:
    """Coerce known keys from a section, warning about and skipping anything unusable."""
    result: Dict[str, Any] = {}
    for key, raw_value in items:
        key = str(key).replace("-", "_")
        if key not in _CONFIG_FIELD_TYPES:
            logger.warning("Unknown config key '%s' in [%s] section of '%s'; ignoring.", key, section, path)
            continue
        if raw_value is None:
            logger.warning("Config key '%s' has no value in '%s'; ignoring.", key, path)
            continue
        try:
            result[key] = _coerce_field(key, raw_value)
        except ValueError as exc:
            logger.warning("%s in '%s'; using default.", exc, path)
    return result


def load_ini_config(path: str) -> Dict[str, Any]:
    """
    Load and parse an INI-format config file.

    Supports ``=`` and ``:`` as key-value delimiters. Settings live in the
    ``[default]`` section; keys may use dashes or underscores.

    Args:
        path: Path to the INI config file.

    Returns:
        Dictionary of config values.

    Raises:
        ValueError: If the file cannot be read or parsed.
    """
    parser = configparser.ConfigParser(allow_no_value=True, delimiters=("=", ":"))
    try:
        read_files = parser.read(path, encoding="utf-8")
    except configparser.Error as exc:
        raise ValueError(f"Invalid config file '{path}': {exc}") from exc

    if not read_files:
        raise ValueError(f"Config file '{path}' could not be read.")

    if not parser.has_section("default"):
        return {}
    return _collect_fields(parser.items("default"), path, "default")


def load_yaml_config(path: str) -> Dict[str, Any]:
    """
    Load and parse a YAML-format config file.

    Uses ``yaml.safe_load`` to prevent arbitrary code execution. Settings live
    under a top-level ``default`` mapping.

    Args:
        path: Path to the YAML config file.

    Returns:
        Dictionary of config values.

    Raises:
        ValueError: On parse errors or invalid file content.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in config file '{path}': {exc}") from exc
    except OSError as exc:
        raise ValueError(f"Cannot read config file '{path}': {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file '{path}' must contain a YAML mapping at the top level, got {type(data).__name__}.")

    default_section = data.get("default") or {}
    if not isinstance(default_section, dict):
        raise ValueError(f"The 'default' section in '{path}' must be a YAML mapping.")
    return _collect_fields(default_section.items(), path, "default")


def _is_yaml_file(path: str) -> bool:
    """
    Heuristically determine whether a config file uses YAML or INI format.

    INI files begin with a ``[section]`` header on the first non-blank,
    non-comment line.  Anything else is treated as YAML.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            for line in fh:
                stripped = line.strip()
                if stripped and not stripped.startswith(("#", ";")):
                    return not stripped.startswith("[")
    except OSError:
        pass
    return False


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load persistent settings from a config file.

    Auto-detects whether the file uses YAML or INI format. A missing file yields
    an empty dict; an unreadable or malformed file is logged and also yields an
    empty dict so that defaults apply.

    Args:
        path: Path to the config file.  Defaults to ``~/.pingwatch.conf``.

    Returns:
        Dictionary of config values.
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH

    if not os.path.exists(path):
        return {}

    try:
        if _is_yaml_file(path):
            logger.debug("Loading YAML config from '%s'.", path)
            return load_yaml_config(path)
        logger.debug("Loading INI config from '%s'.", path)
        return load_ini_config(path)
    except ValueError as exc:
        logger.warning("%s Falling back to default settings.", exc)
        return {}


def build_config(raw: Dict[str, Any], base: MonitorConfig = DEFAULT_CONFIG) -> MonitorConfig:
    """
    Build a MonitorConfig from raw values.

    Each value is coerced and validated on its own; a bad value is logged and
    replaced by the corresponding field of ``base``.

    Args:
        raw: Mapping of field names to raw values
        base: Config supplying values for missing or invalid fields

    Returns:
        A fully populated MonitorConfig
    """
    known = {field.name for field in fields(MonitorConfig)}
    changes: Dict[str, Any] = {}
    for key, raw_value in raw.items():
        if key not in known:
            logger.warning("Unknown setting '%s'; ignoring.", key)
            continue
        if raw_value is None:
            continue
        try:
            changes[key] = _validate_field(key, _coerce_field(key, raw_value))
        except ValueError as exc:
            logger.warning("%s; using default %r.", exc, getattr(base, key))
    return replace(base, **changes)


def load_monitor_config(path: Optional[str] = None) -> MonitorConfig:
    """Load the config file (if any) and build a MonitorConfig from it."""
    return build_config(load_config(path))


def configure_logging(log_level: str, log_file: Optional[str]) -> None:
    """Configure logging handlers for a host process embedding PingWatch."""
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.insert(0, logging.FileHandler(os.path.expanduser(log_file), encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        handlers=handlers,
        force=True,
    )
