"""Utility helpers: XDG paths, JSON file I/O, daemon settings."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path


log = logging.getLogger(__name__)

APP_NAME = "automirror"

DEFAULT_SETTINGS: dict = {
    "poll_interval": 2.0,       # seconds between xrandr queries
    "xrandr": "xrandr",         # binary name or absolute path
    "udev_wakeup": False,       # poll immediately on DRM hotplug events (needs pyudev)
    "dry_run": False,           # log xrandr commands instead of running them
    "log_level": "INFO",
}


def config_dir() -> Path:
    """Return ~/.config/automirror, creating it if needed."""
    base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    d = base / APP_NAME
    d.mkdir(parents=True, exist_ok=True)
    return d


def read_json(path: Path) -> dict | list | None:
    """Read and parse a JSON file, returning None on failure."""
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None


def write_json(path: Path, data: dict | list) -> None:
    """Write data as formatted JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def _settings_path() -> Path:
    """Return the path to the daemon settings file."""
    return config_dir() / "settings.json"


def load_app_settings() -> dict:
    """Load settings, filling in defaults for anything missing.

    A missing, unreadable or non-object settings file yields the defaults.
    Unknown keys are dropped; values of the wrong type are replaced by the
    default with a warning.
    """
    data = read_json(_settings_path())
    settings = dict(DEFAULT_SETTINGS)
    if not isinstance(data, dict):
        return settings
    for key, value in data.items():
        if key not in DEFAULT_SETTINGS:
            continue
        if _valid_setting(key, value):
            settings[key] = value
        else:
            log.warning("Ignoring invalid setting %s=%r, using %r", key, value, DEFAULT_SETTINGS[key])
    return settings


def _valid_setting(key: str, value) -> bool:
    default = DEFAULT_SETTINGS[key]
    if isinstance(default, bool):
        return isinstance(value, bool)
    if isinstance(default, float):
        # bool is an int subclass but never a valid interval
        return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0
    return isinstance(value, str) and bool(value)


def save_app_settings(settings: dict) -> None:
    """Save daemon settings."""
    write_json(_settings_path(), settings)
