"""Derive dashboard statistics from the interval and error logs.

:func:`aggregate` is a pure function of ``(intervals, errors, now)``. It keeps
no cache between calls, so a query issued right after an append always sees
the new entry.

Local time is whatever ``tz`` says (the system zone when ``None``). Weekday
indexes start at Sunday = 0. Durations are minutes in the breakdowns and
milliseconds in :class:`RollingSummary`.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from enum import Enum
from typing import Iterable, Optional

from .config import AnalyticsSettings
from .models import Category, ErrorEvent, TimeInterval
from .timeline import MergedSpan, merge_intervals, midnight_ms, total_duration

DAY_MS = 86_400_000
MINUTE_MS = 60_000

_FOCUSED_SESSION_MS = 2 * 3_600_000


class WorkRhythm(str, Enum):
    MORNING_PERSON = "morning_person"
    NIGHT_OWL = "night_owl"
    NORMAL = "normal"


class CodingStyle(str, Enum):
    FOCUSED_CODER = "focused_coder"
    THINKER = "thinker"
    DOER = "doer"


@dataclass(slots=True)
class RollingSummary:
    today: int = 0
    yesterday: int = 0
    this_week: int = 0
    this_week_avg: float = 0.0
    last_week: int = 0
    last_week_avg: float = 0.0
    this_month: int = 0
    this_month_avg: float = 0.0
    last_month: int = 0
    last_month_avg: float = 0.0
    total: int = 0


@dataclass(slots=True)
class DeveloperProfile:
    work_rhythm: WorkRhythm = WorkRhythm.NORMAL
    coding_style: CodingStyle = CodingStyle.DOER
    average_session_ms: float = 0.0
    language_share: dict[str, float] = field(default_factory=dict)


def _grid(rows: int, cols: int) -> list[list[float]]:
    return [[0.0] * cols for _ in range(rows)]


@dataclass(slots=True)
class AggregationResult:
    project_minutes: dict[str, float] = field(default_factory=dict)
    language_minutes: dict[str, float] = field(default_factory=dict)
    hourly_minutes: list[float] = field(default_factory=lambda: [0.0] * 24)
    activity_heatmap: list[list[float]] = field(default_factory=lambda: _grid(7, 24))
    error_heatmap: list[list[int]] = field(default_factory=lambda: [[0] * 24 for _ in range(7)])
    weekly_trend_minutes: list[float] = field(default_factory=lambda: [0.0] * 7)
    time_distribution: dict[Category, float] = field(
        default_factory=lambda: {category: 0.0 for category in Category}
    )
    today_minutes: dict[Category, float] = field(default_factory=dict)
    daily_categories: dict[str, dict[Category, float]] = field(default_factory=dict)
    project_calendar: dict[str, dict[str, float]] = field(default_factory=dict)
    context_switches: int = 0
    overwork_days: int = 0
    focus_score: float = 0.0
    language_lines: dict[str, int] = field(default_factory=dict)
    language_productivity: dict[str, float] = field(default_factory=dict)
    total_errors: int = 0
    summary: RollingSummary = field(default_factory=RollingSummary)
    profile: DeveloperProfile = field(default_factory=DeveloperProfile)


@dataclass(frozen=True, slots=True)
class ReportingWindows:
    """Epoch-millisecond boundaries of the calendar scopes used for comparisons."""

    now: int
    today: int
    yesterday: int
    trailing_week: int
    this_week: int
    last_week: int
    this_month: int
    last_month: int

    @classmethod
    def at(cls, now: int, tz: Optional[tzinfo] = None) -> "ReportingWindows":
        today = local_time(now, tz).date()
        week_start = today - timedelta(days=weekday_index(today))
        month_start = today.replace(day=1)
        last_month_start = (month_start - timedelta(days=1)).replace(day=1)
        return cls(
            now=now,
            today=midnight_ms(today, tz),
            yesterday=midnight_ms(today - timedelta(days=1), tz),
            trailing_week=midnight_ms(today, tz) - 6 * DAY_MS,
            this_week=midnight_ms(week_start, tz),
            last_week=midnight_ms(week_start - timedelta(days=7), tz),
            this_month=midnight_ms(month_start, tz),
            last_month=midnight_ms(last_month_start, tz),
        )


def local_time(timestamp_ms: int, tz: Optional[tzinfo] = None) -> datetime:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=tz)


def weekday_index(value: date) -> int:
    """Sunday-based weekday index (Sunday = 0, Saturday = 6)."""
    return (value.weekday() + 1) % 7


def safe_ratio(numerator: float, denominator: float) -> float:
    if denominator <= 0:
        return 0.0
    return numerator / denominator


def focus_score(writing_minutes: float, thinking_minutes: float) -> float:
    return writing_minutes / max(thinking_minutes, 1.0) * 100


def aggregate(
    intervals: Iterable[TimeInterval],
    errors: Iterable[ErrorEvent],
    now: int,
    *,
    tz: Optional[tzinfo] = None,
    settings: Optional[AnalyticsSettings] = None,
) -> AggregationResult:
    """Compute every dashboard metric from scratch."""
    settings = settings or AnalyticsSettings()
    entries = list(intervals)
    error_events = list(errors)
    windows = ReportingWindows.at(now, tz)
    spans = merge_intervals(entries)

    result = AggregationResult()
    _fill_span_breakdowns(result, spans, windows, tz)
    _fill_raw_breakdowns(result, entries, tz)
    result.error_heatmap = error_heatmap(error_events, tz)
    result.total_errors = len(error_events)
    result.context_switches = count_context_switches(entries)
    result.overwork_days = count_overwork_days(entries, settings.overwork_threshold_ms, tz)
    result.today_minutes = _today_minutes(entries, windows)
    result.focus_score = focus_score(
        result.today_minutes[Category.WRITING], result.today_minutes[Category.THINKING]
    )
    result.language_lines = estimate_language_lines(entries, settings.lines_window_ms)
    result.language_productivity = {
        language: safe_ratio(lines, result.language_minutes.get(language, 0.0))
        for language, lines in result.language_lines.items()
    }
    result.summary = rolling_summary(entries, windows, spans)
    result.profile = _profile(result, entries)
    return result


def _fill_span_breakdowns(
    result: AggregationResult,
    spans: list[MergedSpan],
    windows: ReportingWindows,
    tz: Optional[tzinfo],
) -> None:
    projects: defaultdict[str, float] = defaultdict(float)
    languages: defaultdict[str, float] = defaultdict(float)
    calendar: defaultdict[str, defaultdict[str, float]] = defaultdict(lambda: defaultdict(float))
    for span in spans:
        minutes = span.duration_ms / MINUTE_MS
        started = local_time(span.start, tz)
        projects[span.workspace] += minutes
        languages[span.language] += minutes
        result.hourly_minutes[started.hour] += minutes
        result.activity_heatmap[weekday_index(started.date())][started.hour] += minutes
        calendar[started.date().isoformat()][span.workspace] += minutes
        if span.start >= windows.trailing_week:
            day_index = (span.start - windows.trailing_week) // DAY_MS
            if day_index < 7:
                result.weekly_trend_minutes[day_index] += minutes
    result.project_minutes = dict(projects)
    result.language_minutes = dict(languages)
    result.project_calendar = {day: dict(totals) for day, totals in calendar.items()}


def _fill_raw_breakdowns(
    result: AggregationResult,
    entries: list[TimeInterval],
    tz: Optional[tzinfo],
) -> None:
    daily: defaultdict[str, dict[Category, float]] = defaultdict(
        lambda: {category: 0.0 for category in Category}
    )
    for entry in entries:
        if entry.duration_ms <= 0:
            continue
        minutes = entry.duration_ms / MINUTE_MS
        result.time_distribution[entry.category] += minutes
        daily[local_time(entry.start, tz).date().isoformat()][entry.category] += minutes
    result.daily_categories = dict(sorted(daily.items()))


def _today_minutes(entries: list[TimeInterval], windows: ReportingWindows) -> dict[Category, float]:
    totals: dict[Category, float] = {}
    for category in (Category.WRITING, Category.THINKING, Category.DEBUGGING, Category.ERROR):
        spans = merge_intervals(entries, since=windows.today, categories=(category,))
        totals[category] = total_duration(spans) / MINUTE_MS
    return totals


def error_heatmap(errors: Iterable[ErrorEvent], tz: Optional[tzinfo] = None) -> list[list[int]]:
    heat = [[0] * 24 for _ in range(7)]
    for error in errors:
        moment = local_time(error.timestamp, tz)
        heat[weekday_index(moment.date())][moment.hour] += 1
    return heat


def count_context_switches(entries: Iterable[TimeInterval]) -> int:
    """Count project changes between consecutive active intervals."""
    switches = 0
    previous: Optional[str] = None
    for entry in sorted(entries, key=lambda item: (item.start, item.end)):
        if not entry.is_active:
            continue
        if previous is not None and entry.workspace != previous:
            switches += 1
        previous = entry.workspace
    return switches


def count_overwork_days(
    entries: Iterable[TimeInterval],
    threshold_ms: int,
    tz: Optional[tzinfo] = None,
) -> int:
    """Count calendar days whose raw active time exceeds ``threshold_ms``.

    Raw durations are summed without merging, so overlapping intervals count
    twice here.
    """
    per_day: defaultdict[date, int] = defaultdict(int)
    for entry in entries:
        if entry.is_active and entry.duration_ms > 0:
            per_day[local_time(entry.start, tz).date()] += entry.duration_ms
    return sum(1 for total in per_day.values() if total > threshold_ms)


def estimate_language_lines(entries: Iterable[TimeInterval], window_ms: int) -> dict[str, int]:
    lines: defaultdict[str, int] = defaultdict(int)
    for entry in entries:
        if entry.category is Category.WRITING and entry.duration_ms > 0:
            lines[entry.language] += entry.duration_ms // window_ms
    return dict(lines)


def rolling_summary(
    entries: list[TimeInterval],
    windows: ReportingWindows,
    spans: Optional[list[MergedSpan]] = None,
) -> RollingSummary:
    def scoped(since: int, until: Optional[int] = None) -> int:
        return total_duration(merge_intervals(entries, since=since, until=until))

    this_week = scoped(windows.this_week)
    last_week = scoped(windows.last_week, windows.this_week)
    this_month = scoped(windows.this_month)
    last_month = scoped(windows.last_month, windows.this_month)
    return RollingSummary(
        today=scoped(windows.today),
        yesterday=scoped(windows.yesterday, windows.today),
        this_week=this_week,
        this_week_avg=safe_ratio(this_week, (windows.now - windows.this_week) / DAY_MS),
        last_week=last_week,
        last_week_avg=last_week / 7,
        this_month=this_month,
        this_month_avg=safe_ratio(this_month, (windows.now - windows.this_month) / DAY_MS),
        last_month=last_month,
        last_month_avg=safe_ratio(
            last_month, round((windows.this_month - windows.last_month) / DAY_MS)
        ),
        total=total_duration(spans if spans is not None else merge_intervals(entries)),
    )


def _profile(result: AggregationResult, entries: list[TimeInterval]) -> DeveloperProfile:
    morning = sum(result.hourly_minutes[6:12])
    night = sum(result.hourly_minutes[18:24])
    if morning > night * 1.5:
        rhythm = WorkRhythm.MORNING_PERSON
    elif night > morning * 1.5:
        rhythm = WorkRhythm.NIGHT_OWL
    else:
        rhythm = WorkRhythm.NORMAL

    durations = [entry.duration_ms for entry in entries if entry.duration_ms > 0]
    average = sum(durations) / len(durations) if durations else 0.0
    if average > _FOCUSED_SESSION_MS:
        style = CodingStyle.FOCUSED_CODER
    elif result.today_minutes[Category.THINKING] > result.today_minutes[Category.WRITING]:
        style = CodingStyle.THINKER
    else:
        style = CodingStyle.DOER
    language_total = sum(result.language_minutes.values())
    share = {
        language: safe_ratio(minutes, language_total) * 100
        for language, minutes in result.language_minutes.items()
    }
    return DeveloperProfile(
        work_rhythm=rhythm,
        coding_style=style,
        average_session_ms=average,
        language_share=share,
    )
