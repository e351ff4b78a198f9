from __future__ import annotations

"""Configuration loading and validation for StudySAT.

This module loads YAML configuration, applies defaults, and validates
that enumerations and numbers are sane.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

ALLOWED_DISPATCHERS = {"inline", "thread"}
ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


class ConfigError(Exception):
    """Raised when a config file is missing or is not a YAML mapping."""


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file is not valid YAML: {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {path}")
    return data


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML or defaults.

    Args:
        path: Optional path to a YAML config. If None, use package defaults.

    Returns:
        A dictionary with configuration values.
    """
    if path:
        return _load_yaml(Path(path))
    return _load_yaml(Path(__file__).with_name("defaults.yml"))


def _expand(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(Path(str(value)).expanduser())


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply defaults and validate configuration values.

    Unknown enum values fall back to their default with a warning.

    Args:
        cfg: The raw configuration dictionary.

    Returns:
        The validated and merged configuration dictionary.
    """
    # Shallow defaults for missing sections
    for section in ("storage", "sync", "logging"):
        if not isinstance(cfg.get(section), dict):
            cfg[section] = {}

    storage = cfg["storage"]
    sync = cfg["sync"]
    log = cfg["logging"]

    storage.setdefault("local_path", "~/.studysat/defaults.json")
    storage.setdefault("remote_dir", "~/.studysat/cloud")
    storage.setdefault("questions_path", "./data/cb-digital-questions.json")

    sync.setdefault("retention_days", 30)
    sync.setdefault("default_enabled", True)
    sync.setdefault("dispatcher", "inline")

    log.setdefault("level", "WARNING")

    storage["local_path"] = _expand(storage["local_path"])
    storage["remote_dir"] = _expand(storage["remote_dir"])
    storage["questions_path"] = _expand(storage["questions_path"])

    try:
        days = int(sync["retention_days"])
    except (TypeError, ValueError):
        days = 0
    if days < 1:
        logger.warning("Invalid sync.retention_days %r, using 30.", sync["retention_days"])
        days = 30
    sync["retention_days"] = days

    sync["default_enabled"] = bool(sync["default_enabled"])

    if sync["dispatcher"] not in ALLOWED_DISPATCHERS:
        logger.warning("Unsupported sync.dispatcher %r, using 'inline'.", sync["dispatcher"])
        sync["dispatcher"] = "inline"

    level = str(log["level"]).upper()
    if level not in ALLOWED_LOG_LEVELS:
        logger.warning("Unsupported logging.level %r, using 'WARNING'.", log["level"])
        level = "WARNING"
    log["level"] = level

    return cfg
