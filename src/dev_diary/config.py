"""Configuration models and helpers for the dev diary."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


def _to_ms(value: timedelta) -> int:
    return int(value.total_seconds() * 1000)


@dataclass(slots=True)
class TrackerSettings:
    """Runtime configuration for the activity classifier."""

    idle_timeout: timedelta = timedelta(seconds=11)
    idle_threshold: timedelta = timedelta(seconds=10)

    @classmethod
    def from_intervals(
        cls,
        idle_seconds: float,
        threshold_seconds: float | None = None,
    ) -> "TrackerSettings":
        threshold = (
            threshold_seconds if threshold_seconds is not None else max(idle_seconds - 1.0, 0.0)
        )
        return cls(
            idle_timeout=timedelta(seconds=idle_seconds),
            idle_threshold=timedelta(seconds=threshold),
        )

    @property
    def idle_threshold_ms(self) -> int:
        return _to_ms(self.idle_threshold)


@dataclass(slots=True)
class AnalyticsSettings:
    """Thresholds used by the aggregation engine."""

    overwork_threshold: timedelta = timedelta(hours=10)
    # One estimated line of code per this much writing time.
    lines_window: timedelta = timedelta(seconds=10)

    @property
    def overwork_threshold_ms(self) -> int:
        return _to_ms(self.overwork_threshold)

    @property
    def lines_window_ms(self) -> int:
        return _to_ms(self.lines_window)
