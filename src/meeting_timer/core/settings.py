"""Settings management for the meeting timer."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from .clock import is_valid_clock, normalize_clock, parse_clock
from .exceptions import SettingsError
from .models import WEEKDAYS
from .paths import ensure_app_structure, settings_path


class StorageBackend(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


BACKEND_URL_ENV = "MEETING_TIMER_BACKEND_URL"
BACKEND_KEY_ENV = "MEETING_TIMER_BACKEND_KEY"
DEFAULT_TABLE = "meeting_segments"
DEFAULT_MEETING_START = "07:10"
DEFAULT_MEETING_END = "07:50"
DEFAULT_REPORT_TITLE = "FMDS Meeting Schedule"
DEFAULT_ORGANIZATION = "FMDS - First Management Development System"
_SUPPORTED_BACKENDS = {member.value for member in StorageBackend}


@dataclass(slots=True)
class Settings:
    storage_backend: StorageBackend = StorageBackend.LOCAL
    backend_url: str = ""
    backend_api_key: str = ""
    segments_table: str = DEFAULT_TABLE
    request_timeout_seconds: float = 10.0
    meeting_start: str = DEFAULT_MEETING_START
    meeting_end: str = DEFAULT_MEETING_END
    report_title: str = DEFAULT_REPORT_TITLE
    organization: str = DEFAULT_ORGANIZATION
    default_day: str = "Monday"
    alert_enabled: bool = True

    @property
    def window_minutes(self) -> int:
        return parse_clock(self.meeting_end) - parse_clock(self.meeting_start)

    @property
    def meeting_window_label(self) -> str:
        return f"{self.meeting_start} - {self.meeting_end}"

    def resolved_backend_url(self) -> str:
        return os.environ.get(BACKEND_URL_ENV) or self.backend_url

    def resolved_api_key(self) -> str:
        return os.environ.get(BACKEND_KEY_ENV) or self.backend_api_key

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["storage_backend"] = self.storage_backend.value
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Settings":
        backend_value = str(payload.get("storage_backend", StorageBackend.LOCAL.value)).lower()
        if backend_value not in _SUPPORTED_BACKENDS:
            raise SettingsError(f"Unsupported storage backend: {backend_value}")

        meeting_start = str(payload.get("meeting_start") or DEFAULT_MEETING_START).strip()
        meeting_end = str(payload.get("meeting_end") or DEFAULT_MEETING_END).strip()
        for label, value in (("meeting start", meeting_start), ("meeting end", meeting_end)):
            if not is_valid_clock(value):
                raise SettingsError(f"Invalid {label}: {value!r}")

        settings = cls(
            storage_backend=StorageBackend(backend_value),
            backend_url=str(payload.get("backend_url") or "").strip(),
            backend_api_key=str(payload.get("backend_api_key") or "").strip(),
            segments_table=str(payload.get("segments_table") or DEFAULT_TABLE).strip(),
            request_timeout_seconds=float(payload.get("request_timeout_seconds", 10.0) or 10.0),
            meeting_start=normalize_clock(meeting_start),
            meeting_end=normalize_clock(meeting_end),
            report_title=str(payload.get("report_title") or DEFAULT_REPORT_TITLE).strip(),
            organization=str(payload.get("organization") or DEFAULT_ORGANIZATION).strip(),
            default_day=str(payload.get("default_day") or "Monday").strip(),
            alert_enabled=bool(payload.get("alert_enabled", True)),
        )
        _validate(settings)
        return settings


class SettingsManager:
    def __init__(self, path: Path | None = None, logger: logging.Logger | None = None) -> None:
        if path is None:
            ensure_app_structure()
        self._path = Path(path) if path is not None else settings_path()
        self._logger = logger or logging.getLogger("meeting_timer.settings")

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Settings:
        if not self._path.exists():
            self._logger.info(
                "Settings file missing; using defaults",
                extra={"event": "settings_load_default", "path": str(self._path)},
            )
            return Settings()

        try:
            with self._path.open("r", encoding="utf-8") as infile:
                payload = json.load(infile)
        except json.JSONDecodeError as exc:
            self._logger.exception(
                "Invalid JSON in settings file",
                extra={"event": "settings_load_invalid_json"},
            )
            raise SettingsError("Settings file is malformed") from exc
        except Exception as exc:
            self._logger.exception("Unexpected error loading settings")
            raise SettingsError("Unable to load settings") from exc

        if not isinstance(payload, dict):
            raise SettingsError("Settings payload is invalid")

        try:
            settings = Settings.from_dict(payload)
        except SettingsError:
            raise
        except Exception as exc:
            self._logger.exception(
                "Settings payload invalid",
                extra={"event": "settings_load_invalid_payload"},
            )
            raise SettingsError("Settings payload is invalid") from exc

        self._logger.info(
            "Settings loaded successfully",
            extra={
                "event": "settings_loaded",
                "storage_backend": settings.storage_backend.value,
                "backend_url": settings.backend_url,
                "segments_table": settings.segments_table,
                "meeting_start": settings.meeting_start,
                "meeting_end": settings.meeting_end,
                "default_day": settings.default_day,
                "alert_enabled": settings.alert_enabled,
            },
        )
        return settings

    def save(self, settings: Settings) -> None:
        self._logger.info(
            "Saving settings",
            extra={
                "event": "settings_save",
                "storage_backend": settings.storage_backend.value,
                "backend_url": settings.backend_url,
                "segments_table": settings.segments_table,
                "meeting_start": settings.meeting_start,
                "meeting_end": settings.meeting_end,
                "default_day": settings.default_day,
                "alert_enabled": settings.alert_enabled,
            },
        )
        _validate(settings)

        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._path.with_suffix(".tmp")
        try:
            with temp_path.open("w", encoding="utf-8") as outfile:
                json.dump(settings.to_dict(), outfile, indent=2)
                outfile.flush()
                os.fsync(outfile.fileno())
            temp_path.replace(self._path)
        except Exception as exc:
            self._logger.exception("Failed to save settings")
            raise SettingsError("Unable to save settings") from exc

    def update(self, transform: Callable[[Settings], Settings]) -> Settings:
        current = self.load()
        updated = transform(current)
        self.save(updated)
        return updated


def _validate(settings: Settings) -> None:
    if settings.storage_backend.value not in _SUPPORTED_BACKENDS:
        raise SettingsError(f"Unsupported storage backend: {settings.storage_backend.value}")
    for label, value in (("meeting start", settings.meeting_start), ("meeting end", settings.meeting_end)):
        if not is_valid_clock(value):
            raise SettingsError(f"Invalid {label}: {value!r}")
    if settings.window_minutes <= 0:
        raise SettingsError("Meeting end must be after meeting start")
    if settings.default_day not in WEEKDAYS:
        raise SettingsError(f"Unsupported default day: {settings.default_day}")
    if settings.request_timeout_seconds <= 0:
        raise SettingsError("Request timeout must be positive")
    if not settings.segments_table:
        raise SettingsError("Segments table name must be non-empty")
