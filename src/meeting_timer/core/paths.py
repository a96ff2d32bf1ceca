"""Where the meeting timer keeps its segments, settings, log and reports."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Mapping

APP_NAME = "meeting-timer"
HOME_ENV_VAR = "MEETING_TIMER_HOME"
SEGMENTS_FILENAME = "segments.jsonl"
SETTINGS_FILENAME = "settings.json"
LOG_FILENAME = "meeting-timer.log"
REPORTS_DIRNAME = "reports"

_override: Path | None = None


def resolve_data_root(environ: Mapping[str, str] | None = None) -> Path:
    """Pick the data directory from the environment.

    ``MEETING_TIMER_HOME`` wins outright. Otherwise the app lives in a
    ``meeting-timer`` folder under ``APPDATA`` (Windows), ``XDG_DATA_HOME``, or
    ``~/.local/share``, in that order.
    """
    env = os.environ if environ is None else environ
    explicit = env.get(HOME_ENV_VAR)
    if explicit:
        return Path(explicit).expanduser()
    for variable in ("APPDATA", "XDG_DATA_HOME"):
        root = env.get(variable)
        if root:
            return Path(root).expanduser() / APP_NAME
    return Path.home() / ".local" / "share" / APP_NAME


def set_app_data_directory(path: Path | str | None) -> Path:
    """Pin the data directory for this process; ``None`` returns to environment lookup."""
    global _override
    _override = Path(path).expanduser() if path else None
    app_data_dir.cache_clear()
    return app_data_dir()


def reset_app_data_directory() -> Path:
    return set_app_data_directory(None)


@lru_cache(maxsize=1)
def app_data_dir() -> Path:
    base = _override or resolve_data_root()
    base.mkdir(parents=True, exist_ok=True)
    return base


def settings_path() -> Path:
    return app_data_dir() / SETTINGS_FILENAME


def segments_path() -> Path:
    return app_data_dir() / SEGMENTS_FILENAME


def log_path() -> Path:
    return app_data_dir() / LOG_FILENAME


def reports_dir() -> Path:
    folder = app_data_dir() / REPORTS_DIRNAME
    folder.mkdir(parents=True, exist_ok=True)
    return folder


def ensure_app_structure() -> Path:
    reports_dir()
    return app_data_dir()
