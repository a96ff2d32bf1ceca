"""Wall-clock helpers for ``HH:MM`` schedule times."""

from __future__ import annotations

import re

MINUTES_PER_DAY = 24 * 60

_CLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_clock(value: str) -> int:
    """Return minutes since midnight for an ``H:MM`` or ``HH:MM`` string."""
    match = _CLOCK_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise ValueError(f"Invalid clock time: {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Clock time out of range: {value!r}")
    return hours * 60 + minutes


def format_clock(minutes: int) -> str:
    if minutes < 0 or minutes >= MINUTES_PER_DAY:
        raise ValueError("Clock minutes must fall within a single day")
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


def normalize_clock(value: str | None) -> str | None:
    if value is None:
        return None
    return format_clock(parse_clock(value))


def add_minutes(value: str, minutes: int) -> str:
    return format_clock(parse_clock(value) + minutes)


def clock_sort_key(value: str | None) -> int:
    # Missing start times order ahead of everything else.
    if value is None:
        return 0
    return parse_clock(value)


def is_valid_clock(value: str) -> bool:
    try:
        parse_clock(value)
    except ValueError:
        return False
    return True


def format_countdown(seconds: int) -> str:
    seconds = max(0, int(seconds))
    mins, secs = divmod(seconds, 60)
    return f"{mins:02d}:{secs:02d}"
