"""Command-line controller wiring settings, the segment store, analytics and reports together."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Sequence, TextIO

from . import __version__
from .core.analytics import build_analytics, build_day_view
from .core.clock import format_countdown
from .core.exception_logging import install_global_exception_logger
from .core.exceptions import MeetingTimerError, PersistenceError, SegmentValidationError, SettingsError
from .core.exporter import ExportFormat, build_report, default_report_filename, format_time_range, write_report
from .core.logging_config import configure_logging
from .core.models import WEEKDAYS, DayOverride, DaySchedule, Segment, SegmentDraft
from .core.paths import reports_dir
from .core.remote_store import RestSegmentStore
from .core.repository import SegmentStore, SegmentsRepository, seed_default_segments
from .core.settings import Settings, SettingsManager, StorageBackend
from .core.timer import timer_for

LOGGER = logging.getLogger("meeting_timer.app")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def parse_override(value: str) -> DayOverride:
    """Parse ``Day=HH:MM/minutes`` into a :class:`DayOverride`."""
    try:
        day, rest = value.split("=", 1)
        start, minutes = rest.split("/", 1)
        return DayOverride(day=day.strip().capitalize(), start_time=start.strip(), duration=int(minutes))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid override {value!r}; expected Day=HH:MM/minutes") from exc


def parse_days(value: str) -> tuple[str, ...]:
    return tuple(part.strip().capitalize() for part in value.split(",") if part.strip())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="meeting-timer", description="Weekly meeting schedule manager")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--settings", type=Path, help="Path to an alternative settings file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("list", help="List all segments")
    commands.add_parser("seed", help="Create the default agenda when the store is empty")

    def add_segment_fields(sub: argparse.ArgumentParser, required: bool) -> None:
        sub.add_argument("--title", required=required)
        sub.add_argument("--duration", type=int, required=required, help="Default duration in minutes")
        sub.add_argument("--days", type=parse_days, required=required, help="Comma-separated weekdays")
        sub.add_argument("--start", dest="start_time", help="Default start time (HH:MM)")
        sub.add_argument("--end", dest="end_time", help="Default end time (HH:MM)")
        sub.add_argument(
            "--override",
            dest="overrides",
            action="append",
            type=parse_override,
            help="Per-day override as Day=HH:MM/minutes (repeatable)",
        )

    add_segment_fields(commands.add_parser("add", help="Create a segment"), required=True)
    update = commands.add_parser("update", help="Update a segment")
    update.add_argument("segment_id")
    add_segment_fields(update, required=False)
    update.add_argument(
        "--clear-overrides",
        action="store_true",
        help="Remove every per-day override (any --override given is applied afterwards)",
    )

    delete = commands.add_parser("delete", help="Delete a segment")
    delete.add_argument("segment_id")

    day = commands.add_parser("day", help="Show the effective schedule for one weekday")
    day.add_argument("day", nargs="?", choices=WEEKDAYS)

    analytics = commands.add_parser("analytics", help="Show weekly analytics")
    analytics.add_argument("--json", action="store_true", help="Emit machine-readable JSON")

    export = commands.add_parser("export", help="Write a schedule report")
    export.add_argument("--format", dest="export_format", choices=[fmt.value for fmt in ExportFormat], default="csv")
    export.add_argument("--output", type=Path, help="Target file (defaults to the reports directory)")

    countdown = commands.add_parser("countdown", help="Run the countdown timer for one segment")
    countdown.add_argument("day", nargs="?", choices=WEEKDAYS)
    countdown.add_argument("--index", type=int, default=1, help="1-based position in the day's schedule")

    return parser


def open_store(settings: Settings) -> SegmentStore:
    if settings.storage_backend is StorageBackend.REMOTE:
        url = settings.resolved_backend_url()
        if not url:
            raise SettingsError("Remote storage selected but no backend URL is configured")
        return RestSegmentStore(
            url,
            settings.resolved_api_key(),
            table=settings.segments_table,
            timeout=settings.request_timeout_seconds,
        )
    return SegmentsRepository()


class ApplicationController:
    def __init__(
        self,
        settings: Settings,
        store: SegmentStore,
        out: TextIO | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._settings = settings
        self._store = store
        self._out = out or sys.stdout
        self._sleep = sleep
        self._clock = clock

    def run(self, args: argparse.Namespace) -> int:
        handler = getattr(self, f"_cmd_{args.command}")
        try:
            return handler(args)
        except SegmentValidationError as exc:
            self._echo(f"Invalid segment: {exc}")
            return EXIT_USAGE
        except (PersistenceError, SettingsError) as exc:
            LOGGER.exception("Command failed", extra={"event": "command_failed", "command": args.command})
            self._echo(f"Error: {exc}")
            return EXIT_FAILURE

    # ------------------------------------------------------------------
    # Commands
    def _cmd_list(self, args: argparse.Namespace) -> int:
        segments = self._store.list_all()
        if not segments:
            self._echo("No segments defined.")
            return EXIT_OK
        for segment in segments:
            self._echo(_describe_segment(segment))
        return EXIT_OK

    def _cmd_seed(self, args: argparse.Namespace) -> int:
        created = seed_default_segments(self._store)
        self._echo(f"Created {len(created)} default segment(s).")
        return EXIT_OK

    def _cmd_add(self, args: argparse.Namespace) -> int:
        draft = SegmentDraft(
            title=args.title,
            duration=args.duration,
            days=args.days,
            start_time=args.start_time,
            end_time=args.end_time,
            day_schedules=tuple(args.overrides or ()),
        )
        segment = self._store.create(draft)
        self._echo(f"Created {segment.segment_id}: {segment.title}")
        return EXIT_OK

    def _cmd_update(self, args: argparse.Namespace) -> int:
        segment = self._store.update(
            args.segment_id,
            title=args.title,
            duration=args.duration,
            days=args.days,
            start_time=args.start_time,
            end_time=args.end_time,
            day_schedules=_requested_overrides(args),
        )
        self._echo(f"Updated {segment.segment_id}: {segment.title}")
        return EXIT_OK

    def _cmd_delete(self, args: argparse.Namespace) -> int:
        self._store.delete(args.segment_id)
        self._echo(f"Deleted {args.segment_id}")
        return EXIT_OK

    def _cmd_day(self, args: argparse.Namespace) -> int:
        view = build_day_view(self._store.list_all(), args.day or self._settings.default_day)
        self._print_day(view)
        return EXIT_OK

    def _cmd_analytics(self, args: argparse.Namespace) -> int:
        analytics = build_analytics(self._store.list_all())
        if args.json:
            self._echo(json.dumps(analytics.to_dict(), indent=2))
            return EXIT_OK
        busiest = analytics.most_busy_day
        self._echo(f"Total activities:      {analytics.total_activities}")
        self._echo(f"Total minutes:         {analytics.total_duration}")
        self._echo(f"Weekly minutes:        {analytics.total_weekly_minutes}")
        self._echo(f"Average duration:      {analytics.average_duration} min")
        self._echo(f"Active days:           {analytics.active_days}/{len(WEEKDAYS)}")
        self._echo(f"Busiest day:           {busiest.day} ({busiest.total_duration} min)")
        for view in analytics.all_days_data:
            self._echo(f"  {view.day:<10} {view.activity_count} activities, {view.total_duration} min")
        return EXIT_OK

    def _cmd_export(self, args: argparse.Namespace) -> int:
        export_format = ExportFormat(args.export_format)
        report = build_report(self._store.list_all(), self._settings, generated_at=self._clock().replace(microsecond=0))
        target = args.output or reports_dir() / default_report_filename(export_format, report.generated_at)
        write_report(report, export_format, target)
        LOGGER.info(
            "Report exported",
            extra={"event": "report_exported", "format": export_format.value, "path": str(target)},
        )
        self._echo(f"Report written to {target}")
        return EXIT_OK

    def _cmd_countdown(self, args: argparse.Namespace) -> int:
        view = build_day_view(self._store.list_all(), args.day or self._settings.default_day)
        if view.is_empty:
            self._echo(f"No activities scheduled for {view.day}")
            return EXIT_OK
        if not 1 <= args.index <= view.activity_count:
            self._echo(f"Index must be between 1 and {view.activity_count}")
            return EXIT_USAGE

        item = view.segments[args.index - 1]
        timer = timer_for(item, on_finished=self._alert)
        self._echo(f"{item.title} ({item.duration} min)")
        try:
            while timer.is_running:
                self._echo(f"\r{timer.display}", end="")
                self._sleep(1)
                timer.tick()
        except KeyboardInterrupt:
            timer.stop()
            self._echo("\nStopped")
            return EXIT_OK
        self._echo(f"\r{format_countdown(0)}")
        return EXIT_OK

    # ------------------------------------------------------------------
    # Helpers
    def _alert(self, label: str) -> None:
        if self._settings.alert_enabled:
            self._echo("\a", end="")
        self._echo(f"\nTime is up: {label}")

    def _print_day(self, view: DaySchedule) -> None:
        self._echo(f"{view.day} Schedule")
        if view.is_empty:
            self._echo(f"No activities scheduled for {view.day}")
            return
        for item in view.segments:
            marker = " *" if item.schedule.overridden else ""
            self._echo(
                f"  {format_time_range(item.start_time, item.end_time):<15} {item.title} ({item.duration} min){marker}"
            )
        self._echo(f"Total: {view.total_duration} min across {view.activity_count} activities")

    def _echo(self, message: str, end: str = "\n") -> None:
        self._out.write(message + end)
        self._out.flush()


def _requested_overrides(args: argparse.Namespace) -> tuple[DayOverride, ...] | None:
    """``None`` keeps the stored overrides; a tuple replaces them."""
    if args.overrides:
        return tuple(args.overrides)
    if args.clear_overrides:
        return ()
    return None


def _describe_segment(segment: Segment) -> str:
    overrides = ", ".join(
        f"{item.day} {item.start_time}/{item.duration}m" for item in segment.day_schedules
    )
    line = (
        f"{segment.segment_id}  {segment.title}  {segment.duration} min  "
        f"{format_time_range(segment.start_time, segment.end_time)}  [{', '.join(segment.days)}]"
    )
    if overrides:
        line += f"  overrides: {overrides}"
    return line


def run_app(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(logging.DEBUG if args.verbose else logging.INFO, verbose=args.verbose)
    install_global_exception_logger()

    manager = SettingsManager(path=args.settings)
    try:
        settings = manager.load()
    except SettingsError as exc:
        LOGGER.exception("Failed to load settings; using defaults")
        sys.stderr.write(f"Settings error: {exc}; using defaults\n")
        settings = Settings()

    try:
        store = open_store(settings)
    except (MeetingTimerError, ValueError) as exc:
        LOGGER.exception("Unable to open segment store")
        sys.stderr.write(f"Error: {exc}\n")
        return EXIT_FAILURE

    return ApplicationController(settings, store).run(args)
