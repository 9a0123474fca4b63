"""Merge raw intervals into a canonical, non-overlapping timeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, Optional, Protocol

from .models import ACTIVE_CATEGORIES, Category, TimeInterval


class SpanLike(Protocol):
    start: int
    end: int
    workspace: str
    language: str


@dataclass(frozen=True, slots=True)
class MergedSpan:
    """A maximal stretch of active time.

    ``workspace`` and ``language`` come from the interval that last pushed the
    span's end forward. When sessions from two projects interleave, the earlier
    project's share of the overlap is attributed to the later one.
    """

    start: int
    end: int
    workspace: str
    language: str

    @property
    def duration_ms(self) -> int:
        return self.end - self.start


def merge_spans(spans: Iterable[SpanLike]) -> list[MergedSpan]:
    """Sweep ``spans`` into sorted, pairwise disjoint spans.

    Spans with ``end <= start`` are dropped. A span merges into the open one
    only when it starts strictly before the open span ends, so touching spans
    stay separate.
    """
    ordered = sorted(
        (span for span in spans if span.end > span.start),
        key=lambda span: (span.start, span.end),
    )
    merged: list[MergedSpan] = []
    current: Optional[MergedSpan] = None
    for span in ordered:
        if current is not None and span.start < current.end:
            if span.end > current.end:
                current = MergedSpan(current.start, span.end, span.workspace, span.language)
            continue
        if current is not None:
            merged.append(current)
        current = MergedSpan(span.start, span.end, span.workspace, span.language)
    if current is not None:
        merged.append(current)
    return merged


def merge_intervals(
    intervals: Iterable[TimeInterval],
    *,
    since: Optional[int] = None,
    until: Optional[int] = None,
    categories: Iterable[Category] = ACTIVE_CATEGORIES,
) -> list[MergedSpan]:
    """Merge the intervals whose start falls in ``[since, until)``.

    ``rest`` never counts as active time and is always excluded.
    """
    wanted = frozenset(categories) - {Category.REST}
    return merge_spans(
        interval
        for interval in intervals
        if interval.category in wanted
        and (since is None or interval.start >= since)
        and (until is None or interval.start < until)
    )


def total_duration(spans: Iterable[SpanLike]) -> int:
    return sum(span.end - span.start for span in spans)


def day_bounds(day: date, tz: Optional[tzinfo] = None) -> tuple[int, int]:
    """Return the epoch-millisecond bounds of a local calendar day."""
    return midnight_ms(day, tz), midnight_ms(day + timedelta(days=1), tz)


def midnight_ms(day: date, tz: Optional[tzinfo] = None) -> int:
    return int(datetime(day.year, day.month, day.day, tzinfo=tz).timestamp() * 1000)


def merge_day(
    intervals: Iterable[TimeInterval],
    day: date,
    tz: Optional[tzinfo] = None,
) -> list[MergedSpan]:
    since, until = day_bounds(day, tz)
    return merge_intervals(intervals, since=since, until=until)
