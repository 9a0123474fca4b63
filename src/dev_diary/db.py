"""SQLite key-value layer backing the interval and error logs."""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Union

logger = logging.getLogger(__name__)

DbPath = Union[Path, str]


def open_database(path: DbPath, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(
    path: DbPath, *, check_same_thread: bool = True
) -> Iterator[sqlite3.Connection]:
    conn = open_database(path, check_same_thread=check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS list_items (
            id INTEGER PRIMARY KEY,
            list_key TEXT NOT NULL,
            payload TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_list_items_key
            ON list_items(list_key, id);

        CREATE TABLE IF NOT EXISTS counters (
            counter_key TEXT PRIMARY KEY,
            value INTEGER NOT NULL DEFAULT 0
        );
        """
    )


def append_to_list(conn: sqlite3.Connection, key: str, item: dict[str, Any]) -> None:
    """Append one JSON item to the list stored under ``key``."""
    if not key:
        raise ValueError("list key must not be empty")
    conn.execute(
        "INSERT INTO list_items (list_key, payload) VALUES (?, ?)",
        (key, json.dumps(item, separators=(",", ":"))),
    )


def load_list(conn: sqlite3.Connection, key: str) -> list[Any]:
    """Return every item under ``key`` in append order.

    The result is a fresh list, so callers may treat it as a snapshot. Rows
    whose payload is not valid JSON are skipped with a warning.
    """
    rows = conn.execute(
        "SELECT payload FROM list_items WHERE list_key = ? ORDER BY id",
        (key,),
    )
    items: list[Any] = []
    for row in rows:
        try:
            items.append(json.loads(row["payload"]))
        except json.JSONDecodeError:
            logger.warning("Skipping undecodable %s row: %r", key, row["payload"])
    return items


def load_counter(conn: sqlite3.Connection, key: str) -> int:
    row = conn.execute(
        "SELECT value FROM counters WHERE counter_key = ?", (key,)
    ).fetchone()
    return int(row["value"]) if row is not None else 0


def store_counter(conn: sqlite3.Connection, key: str, value: int) -> None:
    if not key:
        raise ValueError("counter key must not be empty")
    conn.execute(
        """
        INSERT INTO counters (counter_key, value) VALUES (?, ?)
        ON CONFLICT(counter_key) DO UPDATE SET value = excluded.value
        """,
        (key, int(value)),
    )
