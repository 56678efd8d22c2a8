"""Helpers for reading the optional YAML configuration file of the command line tool."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

LOGGER = logging.getLogger(__name__)

KNOWN_KEYS = frozenset(
    {
        "channel",
        "token",
        "date",
        "dry_run",
        "transcript",
        "groups",
        "repos",
        "url",
        "file",
        "rate_limit",
        "workers",
        "log_level",
    }
)


class ConfigLoadError(ValueError):
    """The configuration file is missing, unreadable, or not a mapping."""


def _normalise_key(key: object) -> str:
    return str(key).strip().lower().replace("-", "_")


def _normalise_value(value: Any) -> Any:
    """Flatten YAML lists into the comma separated form used on the command line."""

    if isinstance(value, (list, tuple)):
        return ",".join(str(item).strip() for item in value if str(item).strip())
    return value


def load_config(path: Path) -> dict[str, Any]:
    """Parse ``path`` into a dictionary keyed by option name (``dry-run`` becomes ``dry_run``)."""

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Cannot read configuration file {path}: {exc}") from exc

    try:
        payload = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigLoadError(f"Failed to parse YAML configuration {path}: {exc}") from exc

    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigLoadError(f"Configuration file {path} must contain a mapping")

    settings: dict[str, Any] = {}
    for key, value in payload.items():
        name = _normalise_key(key)
        if name not in KNOWN_KEYS:
            LOGGER.warning("Ignoring unknown configuration key %r in %s", key, path)
            continue
        settings[name] = _normalise_value(value)
    return settings


__all__ = ["ConfigLoadError", "KNOWN_KEYS", "load_config"]
