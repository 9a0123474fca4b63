"""Shared fixtures: a manual clock, a manual event loop and an in-memory store."""

from __future__ import annotations

import pytest

from dev_diary.db import open_database
from dev_diary.store import ActivityStore
from dev_diary.tracker import ActivityTracker


class FakeClock:
    def __init__(self, now: int = 0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


class FakeHandle:
    def __init__(self, due: int, callback) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeLoop:
    """Runs ``call_later`` callbacks only when the test advances the clock."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.handles: list[FakeHandle] = []

    def call_later(self, delay, callback, *args):
        handle = FakeHandle(self.clock.now + int(delay * 1000), lambda: callback(*args))
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> list[FakeHandle]:
        return [handle for handle in self.handles if not handle.cancelled]

    def advance(self, milliseconds: int) -> None:
        target = self.clock.now + milliseconds
        while True:
            due = sorted(
                (h for h in self.pending if h.due <= target), key=lambda h: h.due
            )
            if not due:
                break
            handle = due[0]
            self.handles.remove(handle)
            self.clock.now = handle.due
            handle.callback()
        self.clock.now = target


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def loop(clock):
    return FakeLoop(clock)


@pytest.fixture
def store():
    conn = open_database(":memory:")
    try:
        yield ActivityStore(conn)
    finally:
        conn.close()


@pytest.fixture
def tracker(store, clock, loop):
    return ActivityTracker(store, clock=clock, scheduler=loop)
