"""Day views and weekly analytics derived from a segment list.

Every function here is pure: segments are read, never mutated, and each call
recomputes its result from scratch. Callers load segments from a store and pass
them in; report writers and the CLI only consume the returned shapes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from operator import attrgetter
from typing import Sequence

from .clock import clock_sort_key
from .models import (
    WEEKDAYS,
    Analytics,
    DaySchedule,
    EffectiveSchedule,
    ScheduledSegment,
    Segment,
    derive_end_time,
)

WEEKLY_MINUTES_BENCHMARK = (200, 300)
DAILY_MINUTES_BENCHMARK = (40, 60)
COVERAGE_BENCHMARK = (80, 100)
DIVERSITY_BENCHMARK = (4, 8)


def round_half_up(numerator: int, denominator: int) -> int:
    """Round ``numerator / denominator`` to the nearest integer, halves toward +inf.

    Matches JavaScript's ``Math.round`` and works on the exact ratio, so no
    float representation error can tip a ``.5`` the wrong way.
    """
    if denominator == 0:
        raise ZeroDivisionError("denominator must be non-zero")
    if denominator < 0:
        numerator, denominator = -numerator, -denominator
    return (2 * numerator + denominator) // (2 * denominator)


# ---------------------------------------------------------------------------
# Effective schedule


def resolve_effective_schedule(segment: Segment, day: str) -> EffectiveSchedule:
    override = segment.override_for(day)
    if override is not None:
        return EffectiveSchedule(
            start_time=override.start_time,
            duration=override.duration,
            end_time=derive_end_time(override.start_time, override.duration),
            overridden=True,
        )
    return EffectiveSchedule(
        start_time=segment.start_time,
        duration=segment.duration,
        end_time=segment.end_time,
    )


def _start_sort_key(item: ScheduledSegment) -> int:
    try:
        return clock_sort_key(item.start_time)
    except ValueError:
        return 0


def build_day_view(segments: Sequence[Segment], day: str) -> DaySchedule:
    scheduled = [
        ScheduledSegment(segment=segment, schedule=resolve_effective_schedule(segment, day))
        for segment in segments
        if segment.occurs_on(day)
    ]
    # list.sort is stable: equal start times keep input order.
    scheduled.sort(key=_start_sort_key)
    return DaySchedule(
        day=day,
        segments=tuple(scheduled),
        total_duration=sum(item.duration for item in scheduled),
        activity_count=len(scheduled),
    )


def build_all_day_views(segments: Sequence[Segment]) -> tuple[DaySchedule, ...]:
    return tuple(build_day_view(segments, day) for day in WEEKDAYS)


# ---------------------------------------------------------------------------
# Weekly aggregates


def segment_weekly_minutes(segment: Segment) -> int:
    return sum(resolve_effective_schedule(segment, day).duration for day in segment.days)


def build_analytics(segments: Sequence[Segment]) -> Analytics:
    all_days = build_all_day_views(segments)
    total_activities = len(segments)
    # Default durations only; per-day overrides are reflected in the weekly total.
    total_duration = sum(segment.duration for segment in segments)
    total_weekly_minutes = sum(segment_weekly_minutes(segment) for segment in segments)
    average_duration = round_half_up(total_duration, total_activities) if total_activities > 0 else 0
    active_days = sum(1 for view in all_days if view.activity_count > 0)
    most_busy_day = sorted(all_days, key=attrgetter("total_duration"), reverse=True)[0]

    return Analytics(
        total_activities=total_activities,
        total_duration=total_duration,
        total_weekly_minutes=total_weekly_minutes,
        average_duration=average_duration,
        active_days=active_days,
        most_busy_day=most_busy_day,
        all_days_data=all_days,
    )


def average_daily_minutes(analytics: Analytics) -> int:
    return round_half_up(analytics.total_weekly_minutes, len(WEEKDAYS))


def coverage_rate(analytics: Analytics) -> int:
    return round_half_up(analytics.active_days * 100, len(WEEKDAYS))


# ---------------------------------------------------------------------------
# Report metrics


class DurationCategory(str, Enum):
    QUICK = "Quick"
    STANDARD = "Standard"
    EXTENDED = "Extended"


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


def classify_duration(duration: int) -> DurationCategory:
    if duration <= 10:
        return DurationCategory.QUICK
    if duration <= 20:
        return DurationCategory.STANDARD
    return DurationCategory.EXTENDED


def classify_priority(day_count: int) -> Priority:
    if day_count >= 4:
        return Priority.HIGH
    if day_count >= 2:
        return Priority.MEDIUM
    return Priority.LOW


def efficiency_score(segment: Segment, window_minutes: int) -> int:
    """Percentage of weekday coverage scaled by how much of the window one run takes."""
    if segment.duration <= 0:
        return 0
    return round_half_up(len(segment.days) * window_minutes * 100, len(WEEKDAYS) * segment.duration)


def day_utilization(view: DaySchedule, window_minutes: int) -> int:
    if window_minutes <= 0:
        return 0
    return round_half_up(view.total_duration * 100, window_minutes)


def day_span(view: DaySchedule) -> tuple[str, str] | None:
    if view.is_empty:
        return None
    first, last = view.segments[0], view.segments[-1]
    if first.start_time is None or last.end_time is None:
        return None
    return first.start_time, last.end_time


@dataclass(frozen=True, slots=True)
class PerformanceMetric:
    name: str
    value: int
    unit: str
    benchmark: tuple[int, int]
    meets_benchmark: bool
    status: str
    recommendation: str


def build_performance_metrics(analytics: Analytics) -> tuple[PerformanceMetric, ...]:
    weekly = analytics.total_weekly_minutes
    daily = average_daily_minutes(analytics)
    coverage = coverage_rate(analytics)
    diversity = analytics.total_activities

    weekly_ok = weekly >= WEEKLY_MINUTES_BENCHMARK[0]
    daily_ok = daily >= DAILY_MINUTES_BENCHMARK[0]
    coverage_ok = coverage >= COVERAGE_BENCHMARK[0]
    diversity_ok = diversity >= DIVERSITY_BENCHMARK[0]

    return (
        PerformanceMetric(
            name="Weekly Time Investment",
            value=weekly,
            unit="minutes",
            benchmark=WEEKLY_MINUTES_BENCHMARK,
            meets_benchmark=weekly_ok,
            status="Good" if weekly_ok else "Low",
            recommendation="Optimal range" if weekly_ok else "Consider adding activities",
        ),
        PerformanceMetric(
            name="Daily Average",
            value=daily,
            unit="minutes",
            benchmark=DAILY_MINUTES_BENCHMARK,
            meets_benchmark=daily_ok,
            status="Good" if daily_ok else "Low",
            recommendation="Well balanced" if daily_ok else "Increase daily commitment",
        ),
        PerformanceMetric(
            name="Schedule Coverage",
            value=coverage,
            unit="%",
            benchmark=COVERAGE_BENCHMARK,
            meets_benchmark=coverage_ok,
            status="Excellent" if coverage_ok else "Needs Improvement",
            recommendation="Great coverage" if coverage_ok else "Add more active days",
        ),
        PerformanceMetric(
            name="Activity Diversity",
            value=diversity,
            unit="types",
            benchmark=DIVERSITY_BENCHMARK,
            meets_benchmark=diversity_ok,
            status="Good" if diversity_ok else "Limited",
            recommendation="Good variety" if diversity_ok else "Consider more activity types",
        ),
    )


@dataclass(frozen=True, slots=True)
class TimeAnalysis:
    shortest_duration: int
    longest_duration: int
    duration_variance: int
    activity_density_tenths: int
    optimization_score: int

    @property
    def activity_density(self) -> float:
        return self.activity_density_tenths / 10


def build_time_analysis(segments: Sequence[Segment], analytics: Analytics, window_minutes: int) -> TimeAnalysis:
    durations = [segment.duration for segment in segments]
    shortest = min(durations, default=0)
    longest = max(durations, default=0)
    if analytics.active_days > 0:
        density = round_half_up(analytics.total_activities * 10, analytics.active_days)
    else:
        density = 0
    capacity = analytics.active_days * window_minutes
    optimization = round_half_up(analytics.total_duration * 100, capacity) if capacity > 0 else 0
    return TimeAnalysis(
        shortest_duration=shortest,
        longest_duration=longest,
        duration_variance=longest - shortest,
        activity_density_tenths=density,
        optimization_score=optimization,
    )
