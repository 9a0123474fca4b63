"""Simple reporting utilities for CLI output."""

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Optional

from .analytics import AggregationResult, aggregate
from .db import database_connection
from .store import ActivityStore
from .timeline import merge_day, total_duration


class SummaryPrinter:
    """Render human-readable summaries in the console."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)

    def print_summary(self, now: Optional[datetime] = None) -> None:
        moment = now or datetime.now()
        with database_connection(self.db_path) as conn:
            store = ActivityStore(conn)
            entries = store.get_entries()
            errors = store.get_errors()
            commits = store.get_commit_count()
            comments = store.get_comment_line_count()
        if not entries:
            print("No activity recorded yet.")
            return

        result = aggregate(entries, errors, int(moment.timestamp() * 1000))
        summary = result.summary
        print(f"Summary as of {moment.strftime('%Y-%m-%d %H:%M')}")
        print("-" * 40)
        print(f"Today:          {format_duration_ms(summary.today)}")
        print(f"Yesterday:      {format_duration_ms(summary.yesterday)}")
        print(f"Week avg/day:   {format_duration_ms(summary.this_week_avg)}")
        print(f"Last week avg:  {format_duration_ms(summary.last_week_avg)}")
        print(f"This month:     {format_duration_ms(summary.this_month)}")
        print(f"Last month:     {format_duration_ms(summary.last_month)}")
        print(f"All time:       {format_duration_ms(summary.total)}")
        print()
        print(f"Profile:        {describe(result)}")
        specialization = ", ".join(
            f"{name} ({share:.0f}%)"
            for name, share in top_entries(result.profile.language_share)[:3]
        )
        if specialization:
            print(f"Specialization: {specialization}")
        print(f"Focus score:    {result.focus_score:.2f}")
        print(f"Switches:       {result.context_switches}")
        print(f"Overwork days:  {result.overwork_days}")
        print(f"Errors:         {result.total_errors}")
        print(f"Commits:        {commits}")
        print(f"Comment lines:  {comments}")

        for title, totals in (
            ("Top projects:", result.project_minutes),
            ("Top languages:", result.language_minutes),
        ):
            top = top_entries(totals)
            if top:
                print()
                print(title)
                for name, minutes in top[:5]:
                    print(f"  {name:<30} {format_duration_ms(minutes * 60_000)}")

    def print_timeline(self, day: date) -> None:
        with database_connection(self.db_path) as conn:
            entries = ActivityStore(conn).get_entries()
        spans = merge_day(entries, day)
        if not spans:
            print("No activity recorded for the selected day.")
            return

        print(f"Timeline for {day.isoformat()}")
        print("-" * 40)
        for span in spans:
            start = datetime.fromtimestamp(span.start / 1000).strftime("%H:%M:%S")
            end = datetime.fromtimestamp(span.end / 1000).strftime("%H:%M:%S")
            print(f"  {start}-{end}  {span.workspace[:20]:<20} {span.language[:12]:<12}")
        print(f"Active time: {format_duration_ms(total_duration(spans))}")


def top_entries(totals: dict[str, float]) -> list[tuple[str, float]]:
    return sorted(totals.items(), key=lambda item: item[1], reverse=True)


def format_duration_ms(milliseconds: float) -> str:
    total_seconds = int(round(milliseconds / 1000))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def describe(result: AggregationResult) -> str:
    """One-line profile sentence for the status line."""
    profile = result.profile
    rhythm = profile.work_rhythm.value.replace("_", " ")
    style = profile.coding_style.value.replace("_", " ")
    return f"{rhythm} / {style}, focus {result.focus_score:.0f}"
