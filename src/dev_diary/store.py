"""Typed access to the interval log, error log and counters."""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Callable, Iterable, TypeVar

from .db import append_to_list, load_counter, load_list, store_counter
from .models import ErrorEvent, TimeInterval

logger = logging.getLogger(__name__)

ENTRIES_KEY = "time_entries"
ERRORS_KEY = "error_events"
COMMITS_KEY = "git_commits"
COMMENT_LINES_KEY = "comment_lines"
COMMENT_LINE_NUMBERS_KEY = "comment_line_numbers"

T = TypeVar("T")


class ActivityStore:
    """Append-only logs of intervals and errors plus the metric counters."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def append_entry(self, entry: TimeInterval) -> None:
        append_to_list(self._conn, ENTRIES_KEY, entry.to_record())

    def append_error(self, error: ErrorEvent) -> None:
        append_to_list(self._conn, ERRORS_KEY, error.to_record())

    def get_entries(self) -> list[TimeInterval]:
        return self._load(ENTRIES_KEY, TimeInterval.from_record)

    def get_errors(self) -> list[ErrorEvent]:
        return self._load(ERRORS_KEY, ErrorEvent.from_record)

    def get_commit_count(self) -> int:
        return load_counter(self._conn, COMMITS_KEY)

    def set_commit_count(self, value: int) -> None:
        store_counter(self._conn, COMMITS_KEY, value)

    def get_comment_line_count(self) -> int:
        return load_counter(self._conn, COMMENT_LINES_KEY)

    def set_comment_line_count(self, value: int) -> None:
        store_counter(self._conn, COMMENT_LINES_KEY, value)

    def get_comment_lines(self) -> set[int]:
        return set(self._load(COMMENT_LINE_NUMBERS_KEY, int))

    def add_comment_lines(self, lines: Iterable[int]) -> None:
        for line in lines:
            append_to_list(self._conn, COMMENT_LINE_NUMBERS_KEY, int(line))

    def close(self) -> None:
        self._conn.close()

    def _load(self, key: str, parse: Callable[[Any], T]) -> list[T]:
        items: list[T] = []
        for record in load_list(self._conn, key):
            try:
                items.append(parse(record))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed %s record: %r", key, record)
        return items
