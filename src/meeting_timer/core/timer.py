"""Tick-driven countdown timer for running one segment at a time."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from .clock import format_countdown
from .exceptions import TimerStateError
from .models import ScheduledSegment

LOGGER = logging.getLogger("meeting_timer.timer")


class TimerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"


class CountdownTimer:
    """Counts whole seconds down to zero.

    The timer does not own a clock: callers advance it with :meth:`tick`, which
    keeps it deterministic under test and lets any event loop drive it.
    ``on_finished`` fires exactly once per run, when the remaining time hits zero.
    """

    def __init__(self, on_finished: Callable[[str], None] | None = None) -> None:
        self._on_finished = on_finished
        self._state = TimerState.IDLE
        self._remaining = 0
        self._total = 0
        self._label = ""

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def total(self) -> int:
        return self._total

    @property
    def label(self) -> str:
        return self._label

    @property
    def is_running(self) -> bool:
        return self._state is TimerState.RUNNING

    @property
    def progress(self) -> float:
        if self._total <= 0:
            return 0.0
        return (self._total - self._remaining) / self._total

    @property
    def display(self) -> str:
        return format_countdown(self._remaining)

    def start(self, seconds: int, label: str = "") -> None:
        if seconds <= 0:
            raise TimerStateError("Countdown length must be positive")
        self._remaining = int(seconds)
        self._total = int(seconds)
        self._label = label
        self._state = TimerState.RUNNING
        LOGGER.debug("Timer started", extra={"event": "timer_start", "label": label, "seconds": seconds})

    def pause(self) -> None:
        if self._state is not TimerState.RUNNING:
            raise TimerStateError(f"Cannot pause a {self._state.value} timer")
        self._state = TimerState.PAUSED

    def resume(self) -> None:
        if self._state is not TimerState.PAUSED:
            raise TimerStateError(f"Cannot resume a {self._state.value} timer")
        self._state = TimerState.RUNNING

    def stop(self) -> None:
        self._state = TimerState.IDLE
        self._remaining = 0
        self._total = 0
        self._label = ""

    def tick(self, elapsed: int = 1) -> int:
        """Advance a running timer and return the remaining seconds."""
        if elapsed < 0:
            raise ValueError("elapsed must be non-negative")
        if self._state is not TimerState.RUNNING:
            return self._remaining
        self._remaining = max(0, self._remaining - elapsed)
        if self._remaining == 0:
            self._state = TimerState.FINISHED
            LOGGER.info("Timer finished", extra={"event": "timer_finished", "label": self._label})
            if self._on_finished is not None:
                self._on_finished(self._label)
        return self._remaining


def timer_for(item: ScheduledSegment, on_finished: Callable[[str], None] | None = None) -> CountdownTimer:
    """Return a running timer sized to the segment's effective duration for its day."""
    timer = CountdownTimer(on_finished=on_finished)
    timer.start(item.duration * 60, label=item.title)
    return timer
