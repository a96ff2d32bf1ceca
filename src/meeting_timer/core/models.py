"""Domain models for the meeting timer."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Sequence
import uuid

from .clock import add_minutes, is_valid_clock, normalize_clock
from .exceptions import SegmentValidationError


class Weekday(str, Enum):
    SUNDAY = "Sunday"
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"


WEEKDAYS: tuple[str, ...] = tuple(member.value for member in Weekday)


def _default_segment_id() -> str:
    return uuid.uuid4().hex


def derive_end_time(start_time: str | None, duration: int) -> str | None:
    """Return ``start_time + duration`` or ``None`` when it cannot be expressed in one day."""
    if start_time is None:
        return None
    try:
        return add_minutes(start_time, duration)
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class DayOverride:
    """A per-weekday exception to a segment's default start time and duration."""

    day: str
    start_time: str
    duration: int

    @property
    def end_time(self) -> str | None:
        return derive_end_time(self.start_time, self.duration)

    def to_json_dict(self) -> dict[str, Any]:
        return {"day": self.day, "start_time": self.start_time, "duration": self.duration}

    @classmethod
    def from_json_dict(cls, payload: dict[str, Any]) -> "DayOverride":
        return cls(
            day=str(payload["day"]),
            start_time=str(payload["start_time"]),
            duration=int(payload["duration"]),
        )


@dataclass(frozen=True, slots=True)
class Segment:
    """A recurring activity within the weekly meeting schedule."""

    title: str
    duration: int
    days: tuple[str, ...]
    start_time: str | None = None
    end_time: str | None = None
    day_schedules: tuple[DayOverride, ...] = ()
    segment_id: str = field(default_factory=_default_segment_id)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def override_for(self, day: str) -> DayOverride | None:
        for override in self.day_schedules:
            if override.day == day:
                return override
        return None

    def occurs_on(self, day: str) -> bool:
        return day in self.days

    def with_updates(self, **fields: Any) -> "Segment":
        return replace(self, **fields)

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "id": self.segment_id,
            "title": self.title,
            "duration": self.duration,
            "days": list(self.days),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "day_schedules": [override.to_json_dict() for override in self.day_schedules],
            "created_at": _format_timestamp(self.created_at),
            "updated_at": _format_timestamp(self.updated_at),
        }

    @classmethod
    def from_json_dict(cls, payload: dict[str, Any]) -> "Segment":
        raw_overrides = payload.get("day_schedules") or []
        return cls(
            title=str(payload["title"]),
            duration=int(payload["duration"]),
            days=tuple(str(day) for day in payload.get("days") or ()),
            start_time=_optional_str(payload.get("start_time")),
            end_time=_optional_str(payload.get("end_time")),
            day_schedules=tuple(DayOverride.from_json_dict(item) for item in raw_overrides),
            segment_id=str(payload.get("id") or _default_segment_id()),
            created_at=_parse_timestamp(payload.get("created_at")),
            updated_at=_parse_timestamp(payload.get("updated_at")),
        )


@dataclass(frozen=True, slots=True)
class SegmentDraft:
    """Create/update input for a segment; identifiers and timestamps are assigned by the store."""

    title: str
    duration: int
    days: tuple[str, ...]
    start_time: str | None = None
    end_time: str | None = None
    day_schedules: tuple[DayOverride, ...] = ()

    @classmethod
    def from_segment(cls, segment: Segment) -> "SegmentDraft":
        return cls(
            title=segment.title,
            duration=segment.duration,
            days=segment.days,
            start_time=segment.start_time,
            end_time=segment.end_time,
            day_schedules=segment.day_schedules,
        )

    def merged(self, **fields: Any) -> "SegmentDraft":
        """Return a copy with every non-``None`` field in ``fields`` applied.

        Changing the start time or duration without an explicit end time clears
        the stored end time so :meth:`validate` derives it again.
        """
        unknown = set(fields) - set(self.__dataclass_fields__)
        if unknown:
            raise SegmentValidationError(f"Unknown segment fields: {', '.join(sorted(unknown))}")
        changes = {key: value for key, value in fields.items() if value is not None}
        if ("start_time" in changes or "duration" in changes) and "end_time" not in changes:
            changes["end_time"] = None
        if "days" in changes:
            changes["days"] = tuple(changes["days"])
        if "day_schedules" in changes:
            changes["day_schedules"] = tuple(changes["day_schedules"])
        return replace(self, **changes)

    def validate(self) -> "SegmentDraft":
        """Check store-boundary rules and return a normalized copy."""
        title = (self.title or "").strip()
        if not title:
            raise SegmentValidationError("Segment title must be non-empty")
        if isinstance(self.duration, bool) or not isinstance(self.duration, int) or self.duration <= 0:
            raise SegmentValidationError("Segment duration must be a positive number of minutes")

        days = _validate_days(self.days)
        start_time = _validate_clock(self.start_time, "start time")
        end_time = _validate_clock(self.end_time, "end time")
        if end_time is None and start_time is not None:
            end_time = derive_end_time(start_time, self.duration)

        overrides = _validate_overrides(self.day_schedules, days)
        return SegmentDraft(
            title=title,
            duration=self.duration,
            days=days,
            start_time=start_time,
            end_time=end_time,
            day_schedules=overrides,
        )

    def to_segment(
        self,
        segment_id: str | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> Segment:
        return Segment(
            title=self.title,
            duration=self.duration,
            days=self.days,
            start_time=self.start_time,
            end_time=self.end_time,
            day_schedules=self.day_schedules,
            segment_id=segment_id or _default_segment_id(),
            created_at=created_at,
            updated_at=updated_at,
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "duration": self.duration,
            "days": list(self.days),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "day_schedules": [override.to_json_dict() for override in self.day_schedules],
        }


@dataclass(frozen=True, slots=True)
class EffectiveSchedule:
    """Start/duration/end of a segment on one particular weekday."""

    start_time: str | None
    duration: int
    end_time: str | None
    overridden: bool = False


@dataclass(frozen=True, slots=True)
class ScheduledSegment:
    """A segment as it occurs on one weekday."""

    segment: Segment
    schedule: EffectiveSchedule

    @property
    def title(self) -> str:
        return self.segment.title

    @property
    def start_time(self) -> str | None:
        return self.schedule.start_time

    @property
    def end_time(self) -> str | None:
        return self.schedule.end_time

    @property
    def duration(self) -> int:
        return self.schedule.duration

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.segment.segment_id,
            "title": self.title,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
            "overridden": self.schedule.overridden,
        }


@dataclass(frozen=True, slots=True)
class DaySchedule:
    day: str
    segments: tuple[ScheduledSegment, ...]
    total_duration: int
    activity_count: int

    @property
    def is_empty(self) -> bool:
        return self.activity_count == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "day": self.day,
            "segments": [item.to_dict() for item in self.segments],
            "total_duration": self.total_duration,
            "activity_count": self.activity_count,
        }


@dataclass(frozen=True, slots=True)
class Analytics:
    total_activities: int
    total_duration: int
    total_weekly_minutes: int
    average_duration: int
    active_days: int
    most_busy_day: DaySchedule
    all_days_data: tuple[DaySchedule, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_activities": self.total_activities,
            "total_duration": self.total_duration,
            "total_weekly_minutes": self.total_weekly_minutes,
            "average_duration": self.average_duration,
            "active_days": self.active_days,
            "most_busy_day": {
                "day": self.most_busy_day.day,
                "total_duration": self.most_busy_day.total_duration,
            },
            "all_days_data": [view.to_dict() for view in self.all_days_data],
        }


def _validate_days(days: Iterable[str]) -> tuple[str, ...]:
    requested = list(days or ())
    if not requested:
        raise SegmentValidationError("Segment must be scheduled on at least one day")
    unknown = [day for day in requested if day not in WEEKDAYS]
    if unknown:
        raise SegmentValidationError(f"Unsupported weekday(s): {', '.join(map(str, unknown))}")
    if len(set(requested)) != len(requested):
        raise SegmentValidationError("Segment days must not repeat")
    return tuple(day for day in WEEKDAYS if day in requested)


def _validate_clock(value: str | None, label: str) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if not is_valid_clock(value):
        raise SegmentValidationError(f"Invalid {label}: {value!r} (expected HH:MM)")
    return normalize_clock(value)


def _validate_overrides(overrides: Sequence[DayOverride], days: tuple[str, ...]) -> tuple[DayOverride, ...]:
    seen: set[str] = set()
    normalized: list[DayOverride] = []
    for override in overrides or ():
        if override.day not in days:
            raise SegmentValidationError(f"Override for {override.day} but segment is not scheduled that day")
        if override.day in seen:
            raise SegmentValidationError(f"Duplicate override for {override.day}")
        seen.add(override.day)
        if isinstance(override.duration, bool) or not isinstance(override.duration, int) or override.duration <= 0:
            raise SegmentValidationError(f"Override duration for {override.day} must be positive")
        start_time = _validate_clock(override.start_time, f"{override.day} start time")
        if start_time is None:
            raise SegmentValidationError(f"Override for {override.day} requires a start time")
        normalized.append(DayOverride(day=override.day, start_time=start_time, duration=override.duration))
    normalized.sort(key=lambda item: WEEKDAYS.index(item.day))
    return tuple(normalized)


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat(timespec="seconds")


def _parse_timestamp(value: str | datetime | None) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)
