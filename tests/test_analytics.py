import pytest

from conftest import ALL_DAYS, make_segment
from meeting_timer.core.analytics import (
    DurationCategory,
    Priority,
    build_all_day_views,
    build_analytics,
    build_day_view,
    build_performance_metrics,
    build_time_analysis,
    classify_duration,
    classify_priority,
    day_span,
    day_utilization,
    efficiency_score,
    resolve_effective_schedule,
    round_half_up,
    segment_weekly_minutes,
)
from meeting_timer.core.models import WEEKDAYS


class TestRoundHalfUp:
    def test_halves_round_up(self):
        assert round_half_up(50, 4) == 13
        assert round_half_up(5, 2) == 3
        assert round_half_up(25, 2) == 13

    def test_negative_halves_round_toward_positive(self):
        assert round_half_up(-5, 2) == -2

    def test_below_half_rounds_down(self):
        assert round_half_up(31, 3) == 10
        assert round_half_up(1, 3) == 0

    def test_negative_denominator(self):
        assert round_half_up(5, -2) == -2

    def test_zero_denominator(self):
        with pytest.raises(ZeroDivisionError):
            round_half_up(1, 0)


class TestResolveEffectiveSchedule:
    def test_defaults_without_override(self):
        segment = make_segment("Standup", 10, ("Monday",), "07:10", "07:20")
        schedule = resolve_effective_schedule(segment, "Monday")
        assert (schedule.start_time, schedule.duration, schedule.end_time) == ("07:10", 10, "07:20")
        assert not schedule.overridden

    def test_override_wins_and_end_is_recomputed(self):
        segment = make_segment(
            "Standup", 10, ("Monday", "Wednesday"), "07:10", "07:20", overrides=[("Wednesday", "07:30", 20)]
        )
        schedule = resolve_effective_schedule(segment, "Wednesday")
        assert (schedule.start_time, schedule.duration, schedule.end_time) == ("07:30", 20, "07:50")
        assert schedule.overridden

    def test_stored_end_time_used_for_default_days(self):
        # A stale stored end time is reported as-is on non-override days.
        segment = make_segment("Standup", 10, ("Monday",), "07:10", "07:25")
        assert resolve_effective_schedule(segment, "Monday").end_time == "07:25"

    def test_missing_start_time_propagates_absence(self):
        segment = make_segment("Open floor", 5, ("Monday",))
        schedule = resolve_effective_schedule(segment, "Monday")
        assert schedule.start_time is None
        assert schedule.end_time is None
        assert schedule.duration == 5


class TestBuildDayView:
    def test_filters_by_day_and_totals(self, fmds_segments):
        view = build_day_view(fmds_segments, "Wednesday")
        assert view.day == "Wednesday"
        assert [item.title for item in view.segments] == [
            "Yesterday Problems",
            "Unsafe Conditions",
            "YT Prop Activities",
        ]
        assert view.total_duration == 40
        assert view.activity_count == 3

    def test_sorted_by_effective_start(self):
        segments = [
            make_segment("Late", 10, ("Monday",), "07:40"),
            make_segment("Early", 10, ("Monday",), "07:00"),
            make_segment("Moved", 10, ("Monday", "Tuesday"), "07:50", overrides=[("Monday", "06:50", 10)]),
        ]
        view = build_day_view(segments, "Monday")
        assert [item.title for item in view.segments] == ["Moved", "Early", "Late"]

    def test_single_digit_hours_sort_numerically(self):
        segments = [
            make_segment("Ten", 10, ("Monday",), "10:00"),
            make_segment("Seven", 10, ("Monday",), "7:10"),
        ]
        assert [item.title for item in build_day_view(segments, "Monday").segments] == ["Seven", "Ten"]

    def test_equal_start_times_keep_input_order(self):
        segments = [
            make_segment("Second", 10, ("Monday",), "07:10"),
            make_segment("First", 5, ("Monday",), "07:10"),
            make_segment("Third", 5, ("Monday",), "07:10"),
        ]
        view = build_day_view(segments, "Monday")
        assert [item.title for item in view.segments] == ["Second", "First", "Third"]

    def test_missing_start_sorts_first_in_input_order(self):
        segments = [
            make_segment("Timed", 10, ("Monday",), "00:00"),
            make_segment("Untimed", 10, ("Monday",)),
            make_segment("Later", 10, ("Monday",), "07:00"),
        ]
        view = build_day_view(segments, "Monday")
        assert [item.title for item in view.segments] == ["Timed", "Untimed", "Later"]

    def test_empty_day_is_valid(self, fmds_segments):
        view = build_day_view(fmds_segments[2:3], "Monday")
        assert view.segments == ()
        assert view.total_duration == 0
        assert view.activity_count == 0
        assert view.is_empty

    def test_override_precedence_per_day(self):
        segment = make_segment(
            "Review", 10, ("Monday", "Wednesday", "Thursday"), "07:10", "07:20", overrides=[("Wednesday", "07:30", 20)]
        )
        wednesday = build_day_view([segment], "Wednesday").segments[0]
        assert (wednesday.start_time, wednesday.duration) == ("07:30", 20)
        for day in ("Monday", "Thursday"):
            item = build_day_view([segment], day).segments[0]
            assert (item.start_time, item.duration) == ("07:10", 10)

    def test_override_for_unscheduled_day_is_ignored(self):
        segment = make_segment("Review", 10, ("Monday",), "07:10", overrides=[("Tuesday", "07:30", 20)])
        assert build_day_view([segment], "Tuesday").is_empty
        assert build_day_view([segment], "Monday").total_duration == 10
        assert segment_weekly_minutes(segment) == 10

    def test_sum_invariant(self, fmds_segments):
        segments = fmds_segments + [
            make_segment("Moved", 12, ("Tuesday", "Thursday"), "07:00", overrides=[("Thursday", "07:05", 7)])
        ]
        for day in WEEKDAYS:
            expected = sum(
                resolve_effective_schedule(segment, day).duration for segment in segments if day in segment.days
            )
            assert build_day_view(segments, day).total_duration == expected

    def test_does_not_mutate_input(self, fmds_segments):
        snapshot = list(fmds_segments)
        build_day_view(fmds_segments, "Monday")
        build_analytics(fmds_segments)
        assert fmds_segments == snapshot


class TestBuildAnalytics:
    def test_reference_schedule(self, fmds_segments):
        analytics = build_analytics(fmds_segments)
        assert analytics.total_activities == 4
        assert analytics.total_duration == 50
        assert analytics.total_weekly_minutes == 160
        assert analytics.average_duration == 13
        assert analytics.active_days == 5
        assert analytics.most_busy_day.day == "Wednesday"
        assert analytics.most_busy_day.total_duration == 40

    def test_empty_input(self):
        analytics = build_analytics([])
        assert analytics.total_activities == 0
        assert analytics.total_duration == 0
        assert analytics.total_weekly_minutes == 0
        assert analytics.average_duration == 0
        assert analytics.active_days == 0
        assert analytics.most_busy_day.day == "Sunday"
        assert analytics.most_busy_day.total_duration == 0
        assert [view.day for view in analytics.all_days_data] == list(WEEKDAYS)
        assert all(view.is_empty for view in analytics.all_days_data)

    def test_all_days_always_present_in_canonical_order(self, fmds_segments):
        analytics = build_analytics(fmds_segments[2:3])
        assert len(analytics.all_days_data) == 5
        assert tuple(view.day for view in analytics.all_days_data) == WEEKDAYS

    def test_busiest_day_tie_goes_to_earlier_weekday(self):
        segments = [
            make_segment("A", 20, ("Tuesday", "Thursday")),
            make_segment("B", 5, ("Sunday",)),
        ]
        assert build_analytics(segments).most_busy_day.day == "Tuesday"

    def test_busiest_day_full_tie(self):
        analytics = build_analytics([make_segment("Daily", 10, ALL_DAYS)])
        assert analytics.most_busy_day.day == "Sunday"
        # Canonical order survives the busiest-day selection.
        assert tuple(view.day for view in analytics.all_days_data) == WEEKDAYS

    def test_override_changes_weekly_total_only(self):
        segment = make_segment("Review", 10, ("Monday", "Wednesday"), "07:10", overrides=[("Wednesday", "07:10", 20)])
        analytics = build_analytics([segment])
        assert analytics.total_weekly_minutes == 30
        assert analytics.total_duration == 10
        assert analytics.most_busy_day.day == "Wednesday"

    def test_segment_without_days_counts_as_activity_only(self, fmds_segments):
        inactive = make_segment("Parked", 30, ())
        analytics = build_analytics(fmds_segments + [inactive])
        assert analytics.total_activities == 5
        assert analytics.total_duration == 80
        assert analytics.total_weekly_minutes == 160
        assert analytics.average_duration == 16

    def test_non_positive_duration_propagates(self):
        segments = [make_segment("Broken", -5, ("Monday",)), make_segment("Zero", 0, ("Monday",))]
        analytics = build_analytics(segments)
        assert analytics.all_days_data[1].total_duration == -5
        assert analytics.total_weekly_minutes == -5
        assert analytics.active_days == 1

    def test_idempotent(self, fmds_segments):
        assert build_analytics(fmds_segments) == build_analytics(fmds_segments)
        assert build_day_view(fmds_segments, "Monday") == build_day_view(fmds_segments, "Monday")

    def test_active_days_counts_days_with_segments(self):
        segments = [make_segment("A", 10, ("Monday", "Thursday"))]
        assert build_analytics(segments).active_days == 2

    def test_to_dict_shape(self, fmds_segments):
        payload = build_analytics(fmds_segments).to_dict()
        assert payload["most_busy_day"] == {"day": "Wednesday", "total_duration": 40}
        assert len(payload["all_days_data"]) == 5

    def test_build_all_day_views(self, fmds_segments):
        views = build_all_day_views(fmds_segments)
        assert [view.total_duration for view in views] == [35, 35, 25, 40, 25]


class TestReportMetrics:
    def test_classify_duration(self):
        assert classify_duration(10) is DurationCategory.QUICK
        assert classify_duration(11) is DurationCategory.STANDARD
        assert classify_duration(20) is DurationCategory.STANDARD
        assert classify_duration(21) is DurationCategory.EXTENDED

    def test_classify_priority(self):
        assert classify_priority(5) is Priority.HIGH
        assert classify_priority(4) is Priority.HIGH
        assert classify_priority(2) is Priority.MEDIUM
        assert classify_priority(1) is Priority.LOW

    def test_efficiency_score(self, fmds_segments):
        assert efficiency_score(fmds_segments[0], 40) == 160
        assert efficiency_score(fmds_segments[2], 40) == 53
        assert efficiency_score(make_segment("Zero", 0, ("Monday",)), 40) == 0

    def test_day_utilization(self, fmds_segments):
        views = build_all_day_views(fmds_segments)
        assert day_utilization(views[3], 40) == 100
        assert day_utilization(views[2], 40) == 63
        assert day_utilization(views[2], 0) == 0

    def test_day_span(self, fmds_segments):
        assert day_span(build_day_view(fmds_segments, "Wednesday")) == ("07:11", "07:50")
        assert day_span(build_day_view([], "Wednesday")) is None

    def test_performance_metrics(self, fmds_segments):
        metrics = {metric.name: metric for metric in build_performance_metrics(build_analytics(fmds_segments))}
        assert metrics["Weekly Time Investment"].value == 160
        assert metrics["Weekly Time Investment"].status == "Low"
        assert metrics["Daily Average"].value == 32
        assert not metrics["Daily Average"].meets_benchmark
        assert metrics["Schedule Coverage"].value == 100
        assert metrics["Schedule Coverage"].status == "Excellent"
        assert metrics["Activity Diversity"].status == "Good"

    def test_time_analysis(self, fmds_segments):
        analytics = build_analytics(fmds_segments)
        timing = build_time_analysis(fmds_segments, analytics, 40)
        assert (timing.shortest_duration, timing.longest_duration, timing.duration_variance) == (10, 15, 5)
        assert timing.activity_density == 0.8
        assert timing.optimization_score == 25

    def test_time_analysis_empty(self):
        timing = build_time_analysis([], build_analytics([]), 40)
        assert timing.activity_density == 0
        assert timing.optimization_score == 0
