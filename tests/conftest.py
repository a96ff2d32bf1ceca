import pytest

from meeting_timer.core.models import DayOverride, Segment
from meeting_timer.core.paths import HOME_ENV_VAR, reset_app_data_directory, set_app_data_directory

ALL_DAYS = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday")


def make_segment(title, duration, days, start=None, end=None, overrides=(), segment_id=None):
    """Build a segment directly, bypassing store validation."""
    kwargs = {}
    if segment_id is not None:
        kwargs["segment_id"] = segment_id
    return Segment(
        title=title,
        duration=duration,
        days=tuple(days),
        start_time=start,
        end_time=end,
        day_schedules=tuple(DayOverride(day=d, start_time=s, duration=m) for d, s, m in overrides),
        **kwargs,
    )


@pytest.fixture
def fmds_segments():
    return [
        make_segment("Backlog Review", 10, ("Sunday", "Monday"), "07:10", "07:20", segment_id="1"),
        make_segment("Yesterday Problems", 10, ALL_DAYS, "07:11", "07:21", segment_id="2"),
        make_segment("Unsafe Conditions", 15, ("Wednesday",), "07:21", "07:36", segment_id="3"),
        make_segment("YT Prop Activities", 15, ALL_DAYS, "07:36", "07:50", segment_id="4"),
    ]


@pytest.fixture
def app_home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    monkeypatch.setenv(HOME_ENV_VAR, str(home))
    set_app_data_directory(home)
    yield home
    reset_app_data_directory()
