"""Domain models for recorded editor activity."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping


class Category(str, Enum):
    """What the developer was doing during an interval."""

    WRITING = "writing"
    THINKING = "thinking"
    DEBUGGING = "debugging"
    REST = "rest"
    ERROR = "error"


ACTIVE_CATEGORIES: frozenset[Category] = frozenset(
    {Category.WRITING, Category.THINKING, Category.DEBUGGING, Category.ERROR}
)

UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class TimeInterval:
    """A closed block of time spent in a single category.

    Timestamps are epoch milliseconds.
    """

    start: int
    end: int
    category: Category
    workspace: str = UNKNOWN
    language: str = UNKNOWN

    @property
    def duration_ms(self) -> int:
        return self.end - self.start

    @property
    def is_active(self) -> bool:
        return self.category is not Category.REST

    def to_record(self) -> dict[str, Any]:
        return {
            "start": self.start,
            "end": self.end,
            "category": self.category.value,
            "workspace": self.workspace,
            "language": self.language,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "TimeInterval":
        return cls(
            start=int(record["start"]),
            end=int(record["end"]),
            category=Category(record["category"]),
            workspace=str(record.get("workspace") or UNKNOWN),
            language=str(record.get("language") or UNKNOWN),
        )


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    """A stderr line reported by a debug session."""

    timestamp: int
    message: str
    language: str = UNKNOWN
    workspace: str = UNKNOWN

    def to_record(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "message": self.message,
            "language": self.language,
            "workspace": self.workspace,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "ErrorEvent":
        return cls(
            timestamp=int(record["timestamp"]),
            message=str(record.get("message") or ""),
            language=str(record.get("language") or UNKNOWN),
            workspace=str(record.get("workspace") or UNKNOWN),
        )
