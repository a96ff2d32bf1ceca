"""Schedule reports built from analytics output, written as CSV, Excel, HTML or JSON."""

from __future__ import annotations

import csv
import html
import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Sequence

from .analytics import (
    average_daily_minutes,
    build_analytics,
    build_performance_metrics,
    build_time_analysis,
    classify_duration,
    classify_priority,
    coverage_rate,
    day_span,
    day_utilization,
    efficiency_score,
    round_half_up,
    segment_weekly_minutes,
)
from .models import WEEKDAYS, Analytics, DaySchedule, Segment
from .settings import Settings

NOT_AVAILABLE = "N/A"
NO_ACTIVITIES = "No activities"
REPORT_VERSION = "4.0"


class ExportFormat(Enum):
    CSV = "csv"
    EXCEL = "excel"
    HTML = "html"
    JSON = "json"

    @property
    def extension(self) -> str:
        return {"csv": ".csv", "excel": ".xlsx", "html": ".html", "json": ".json"}[self.value]


@dataclass
class ReportSection:
    title: str
    columns: list[str]
    rows: list[list[object]] = field(default_factory=list)
    empty_message: str | None = None


@dataclass
class Report:
    title: str
    organization: str
    meeting_window: str
    generated_at: datetime
    analytics: Analytics
    sections: list[ReportSection]

    def section(self, title: str) -> ReportSection:
        for section in self.sections:
            if section.title == title:
                return section
        raise KeyError(title)


def format_hours(minutes: int) -> str:
    """Minutes as hours with one decimal place, dropping a trailing ``.0``."""
    tenths = round_half_up(minutes * 10, 60)
    return f"{tenths / 10:g}"


def format_time_range(start: str | None, end: str | None) -> str:
    return f"{start or NOT_AVAILABLE} - {end or NOT_AVAILABLE}"


def default_report_filename(export_format: ExportFormat, generated_at: datetime) -> str:
    return f"FMDS_Schedule_Report_{generated_at.strftime('%Y-%m-%d')}{export_format.extension}"


def build_report(
    segments: Sequence[Segment],
    settings: Settings,
    generated_at: datetime | None = None,
) -> Report:
    generated = generated_at or datetime.now().replace(microsecond=0)
    analytics = build_analytics(segments)
    window = settings.window_minutes

    sections = [
        _summary_section(analytics),
        _activity_section(segments, window),
        _daily_section(analytics, window),
    ]
    sections.extend(_day_section(view) for view in analytics.all_days_data)
    sections.append(_performance_section(analytics))
    sections.append(_time_analysis_section(segments, analytics, settings))
    sections.append(_metadata_section(generated))

    return Report(
        title=settings.report_title,
        organization=settings.organization,
        meeting_window=settings.meeting_window_label,
        generated_at=generated,
        analytics=analytics,
        sections=sections,
    )


def write_report(report: Report, export_format: ExportFormat, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    if export_format is ExportFormat.CSV:
        _write_csv(report, path)
    elif export_format is ExportFormat.EXCEL:
        _write_excel(report, path)
    elif export_format is ExportFormat.HTML:
        path.write_text(render_html(report), encoding="utf-8")
    elif export_format is ExportFormat.JSON:
        _write_json(report, path)
    else:
        raise ValueError(f"Unsupported export format: {export_format}")
    return path


# ---------------------------------------------------------------------------
# Section builders

def _summary_section(analytics: Analytics) -> ReportSection:
    busiest = analytics.most_busy_day
    return ReportSection(
        title="Executive Summary",
        columns=["Metric", "Value", "Analysis"],
        rows=[
            ["Total Activities", analytics.total_activities, "Number of scheduled activities"],
            ["Total Duration", f"{analytics.total_duration} minutes", "Combined duration of all activities"],
            ["Total Hours", f"{format_hours(analytics.total_duration)} hours", "Total time commitment"],
            ["Average Duration", f"{analytics.average_duration} minutes", "Average time per activity"],
            ["Active Days", f"{analytics.active_days}/{len(WEEKDAYS)} weekdays", "Days with scheduled activities"],
            ["Weekly Commitment", f"{analytics.total_weekly_minutes} minutes", "Total weekly time investment"],
            ["Busiest Day", f"{busiest.day} ({busiest.total_duration} minutes)", "Day with the most scheduled time"],
        ],
    )


def _activity_section(segments: Sequence[Segment], window: int) -> ReportSection:
    section = ReportSection(
        title="Detailed Activity Breakdown",
        columns=[
            "Activity ID",
            "Activity Name",
            "Duration (Min)",
            "Start Time",
            "End Time",
            "Scheduled Days",
            "Days/Week",
            "Weekly Minutes",
            "Day Overrides",
            "Category",
            "Priority",
            "Efficiency Score",
        ],
    )
    for index, segment in enumerate(segments, start=1):
        overrides = "; ".join(
            f"{item.day} {item.start_time} ({item.duration} min)" for item in segment.day_schedules
        )
        section.rows.append(
            [
                f"ACT-{index:03d}",
                segment.title,
                segment.duration,
                segment.start_time or NOT_AVAILABLE,
                segment.end_time or NOT_AVAILABLE,
                ", ".join(segment.days),
                len(segment.days),
                segment_weekly_minutes(segment),
                overrides or "None",
                classify_duration(segment.duration).value,
                classify_priority(len(segment.days)).value,
                f"{efficiency_score(segment, window)}%",
            ]
        )
    return section


def _daily_section(analytics: Analytics, window: int) -> ReportSection:
    section = ReportSection(
        title="Daily Schedule Breakdown",
        columns=[
            "Day",
            "Activities Count",
            "Total Duration (Min)",
            "Total Hours",
            "Activity Names",
            "Peak Time",
            "Utilization %",
        ],
    )
    for view in analytics.all_days_data:
        span = day_span(view)
        section.rows.append(
            [
                view.day,
                view.activity_count,
                view.total_duration,
                format_hours(view.total_duration),
                " | ".join(item.title for item in view.segments) or NO_ACTIVITIES,
                f"{span[0]} - {span[1]}" if span else NOT_AVAILABLE,
                f"{day_utilization(view, window)}%",
            ]
        )
    return section


def _day_section(view: DaySchedule) -> ReportSection:
    section = ReportSection(
        title=f"{view.day} Schedule",
        columns=["Activity", "Duration", "Time"],
        empty_message=f"No meetings scheduled for {view.day}",
    )
    for item in view.segments:
        section.rows.append([item.title, f"{item.duration} min", format_time_range(item.start_time, item.end_time)])
    if not view.is_empty:
        section.rows.append(
            [f"{view.day} Total", f"{view.total_duration} min", f"{format_hours(view.total_duration)}h total"]
        )
    return section


def _performance_section(analytics: Analytics) -> ReportSection:
    section = ReportSection(
        title="Performance Metrics",
        columns=["Metric", "Value", "Benchmark", "Status", "Recommendation"],
    )
    for metric in build_performance_metrics(analytics):
        low, high = metric.benchmark
        if metric.unit == "%":
            value, benchmark = f"{metric.value}%", f"{low}-{high}%"
        else:
            value, benchmark = f"{metric.value} {metric.unit}", f"{low}-{high} {metric.unit}"
        section.rows.append([metric.name, value, benchmark, metric.status, metric.recommendation])
    return section


def _time_analysis_section(segments: Sequence[Segment], analytics: Analytics, settings: Settings) -> ReportSection:
    timing = build_time_analysis(segments, analytics, settings.window_minutes)
    busiest = analytics.most_busy_day
    return ReportSection(
        title="Advanced Analytics",
        columns=["Metric", "Value"],
        rows=[
            ["Most Active Day", f"{busiest.day} ({busiest.total_duration} minutes)"],
            ["Daily Average", f"{average_daily_minutes(analytics)} minutes"],
            ["Coverage Rate", f"{coverage_rate(analytics)}% of weekdays"],
            ["Shortest Activity", f"{timing.shortest_duration} minutes"],
            ["Longest Activity", f"{timing.longest_duration} minutes"],
            ["Time Variance", f"{timing.duration_variance} minutes"],
            ["Activity Density", f"{timing.activity_density:g} per active day"],
            ["Peak Utilization", f"{busiest.day} ({busiest.activity_count} activities)"],
            ["Optimization Score", f"{timing.optimization_score}%"],
            ["Meeting Window", settings.meeting_window_label],
        ],
    )


def _metadata_section(generated: datetime) -> ReportSection:
    return ReportSection(
        title="Report Metadata",
        columns=["Field", "Value"],
        rows=[
            ["Report Version", REPORT_VERSION],
            ["Generated", generated.isoformat(sep=" ", timespec="minutes")],
            ["Data Source", "FMDS Meeting Timer"],
            ["Classification", "Internal Use"],
            ["Next Review", (generated + timedelta(days=7)).strftime("%Y-%m-%d")],
        ],
    )


# ---------------------------------------------------------------------------
# Writers

def _write_csv(report: Report, path: Path) -> None:
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow([report.organization])
        writer.writerow([f"{report.title} Report"])
        writer.writerow([f"Generated: {report.generated_at.isoformat(sep=' ', timespec='minutes')}"])
        writer.writerow([f"Meeting Time: {report.meeting_window}"])
        for section in report.sections:
            writer.writerow([])
            writer.writerow([section.title.upper()])
            if not section.rows and section.empty_message:
                writer.writerow([section.empty_message])
                continue
            writer.writerow(section.columns)
            writer.writerows(section.rows)


def _write_excel(report: Report, path: Path) -> None:
    from openpyxl import Workbook  # type: ignore[import]
    from openpyxl.styles import Font  # type: ignore[import]
    from openpyxl.utils import get_column_letter  # type: ignore[import]

    workbook = Workbook()
    overview = workbook.active
    overview.title = "Overview"
    overview.append([report.organization])
    overview.append([f"{report.title} Report"])
    overview.append(["Generated", report.generated_at.isoformat(sep=" ", timespec="minutes")])
    overview.append(["Meeting Time", report.meeting_window])
    overview.cell(row=1, column=1).font = Font(bold=True, size=14)

    used_titles = {overview.title}
    for section in report.sections:
        sheet = workbook.create_sheet(_sheet_title(section.title, used_titles))
        if not section.rows and section.empty_message:
            sheet.append([section.empty_message])
            continue
        sheet.append(section.columns)
        for cell in sheet[1]:
            cell.font = Font(bold=True)
        for row in section.rows:
            sheet.append(row)
        sheet.freeze_panes = "A2"

        for index, column_name in enumerate(section.columns, start=1):
            max_length = len(str(column_name))
            for row in section.rows:
                if index <= len(row):
                    max_length = max(max_length, len(str(row[index - 1])))
            sheet.column_dimensions[get_column_letter(index)].width = max(10, min(max_length + 2, 60))

    workbook.save(path)


def _sheet_title(title: str, used: set[str]) -> str:
    # Excel caps sheet names at 31 characters and forbids a few symbols.
    base = "".join(ch for ch in title if ch not in "[]:*?/\\")[:31]
    candidate = base
    counter = 2
    while candidate in used:
        suffix = f" {counter}"
        candidate = base[: 31 - len(suffix)] + suffix
        counter += 1
    used.add(candidate)
    return candidate


def _write_json(report: Report, path: Path) -> None:
    payload = {
        "title": report.title,
        "organization": report.organization,
        "meeting_window": report.meeting_window,
        "generated_at": report.generated_at.isoformat(timespec="seconds"),
        "analytics": report.analytics.to_dict(),
        "sections": [
            {"title": section.title, "columns": section.columns, "rows": section.rows}
            for section in report.sections
        ],
    }
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=False)
        handle.write("\n")


_HTML_STYLE = """
body { font-family: 'Inter', 'Segoe UI', sans-serif; color: #1a202c; margin: 24px; }
header { text-align: center; margin-bottom: 32px; }
h1 { font-size: 2.4em; margin-bottom: 4px; }
h2 { border-bottom: 2px solid #3498db; padding-bottom: 4px; margin-top: 32px; }
table { width: 100%; border-collapse: collapse; margin-top: 8px; }
th, td { border: 1px solid #e2e8f0; padding: 6px 10px; text-align: left; }
th { background: #2c3e50; color: #fff; }
tr:nth-child(even) td { background: #f8fafc; }
.no-activities { font-style: italic; color: #718096; }
footer { margin-top: 40px; font-size: 0.85em; color: #718096; text-align: center; }
@media print { body { margin: 0; } h2 { page-break-after: avoid; } table { page-break-inside: avoid; } }
"""


def render_html(report: Report) -> str:
    """Render a self-contained, print-ready HTML document."""
    escape = html.escape
    parts = [
        "<!DOCTYPE html>",
        '<html lang="en">',
        "<head>",
        '<meta charset="UTF-8">',
        f"<title>{escape(report.title)} - Report</title>",
        f"<style>{_HTML_STYLE}</style>",
        "</head>",
        "<body>",
        "<header>",
        f"<h1>{escape(report.title)}</h1>",
        f"<p>{escape(report.organization)}</p>",
        f"<p><strong>Daily Meeting Time: {escape(report.meeting_window)}</strong></p>",
        "</header>",
    ]
    for section in report.sections:
        parts.append("<section>")
        parts.append(f"<h2>{escape(section.title)}</h2>")
        if not section.rows and section.empty_message:
            parts.append(f'<p class="no-activities">{escape(section.empty_message)}</p>')
        else:
            parts.append("<table>")
            parts.append("<thead><tr>" + "".join(f"<th>{escape(str(col))}</th>" for col in section.columns) + "</tr></thead>")
            parts.append("<tbody>")
            for row in section.rows:
                parts.append("<tr>" + "".join(f"<td>{escape(str(value))}</td>" for value in row) + "</tr>")
            parts.append("</tbody>")
            parts.append("</table>")
        parts.append("</section>")
    generated = report.generated_at.isoformat(sep=" ", timespec="minutes")
    parts.append(f"<footer>Generated: {escape(generated)} | Classification: Internal Use</footer>")
    parts.append("</body>")
    parts.append("</html>")
    return "\n".join(parts) + "\n"
