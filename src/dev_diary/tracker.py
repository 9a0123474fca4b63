"""Event-loop wrapper that feeds editor signals through the classifier."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Iterable, Optional, Protocol

from .classifier import (
    ClassifierState,
    CommentLineCounter,
    DebugEnded,
    DebugStarted,
    FocusChanged,
    IdleTimeout,
    LineChange,
    Shutdown,
    Signal,
    TextChanged,
    transition,
)
from .config import TrackerSettings
from .models import ErrorEvent, TimeInterval
from .normalization import normalize_language, normalize_workspace
from .store import ActivityStore

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


class IdleTimer:
    """A single cancellable deferred callback.

    Arming while a callback is pending cancels it first, so at most one
    callback is ever scheduled.
    """

    def __init__(self, delay_seconds: float, callback: Callable[[], None]) -> None:
        self._delay = delay_seconds
        self._callback = callback
        self._handle: Optional[TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def arm(self, scheduler: Scheduler) -> None:
        self.cancel()
        self._handle = scheduler.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()


class ActivityTracker:
    """Owns the classifier state and persists what it emits.

    All methods must be called from the same event loop; the tracker does no
    locking of its own.
    """

    def __init__(
        self,
        store: ActivityStore,
        settings: Optional[TrackerSettings] = None,
        *,
        clock: Optional[Clock] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self.store = store
        self.settings = settings or TrackerSettings()
        self._clock = clock or wall_clock_ms
        self._scheduler = scheduler
        self._state = ClassifierState.initial(self._clock())
        self._idle_timer = IdleTimer(
            self.settings.idle_timeout.total_seconds(), self._on_idle_timeout
        )
        self._comment_lines = CommentLineCounter(store.get_comment_lines())

    @property
    def state(self) -> ClassifierState:
        return self._state

    @property
    def idle_timer_pending(self) -> bool:
        return self._idle_timer.pending

    def attach(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler

    def on_focus_change(self, focused: bool) -> None:
        self._dispatch(FocusChanged(focused))

    def on_text_edit(
        self,
        language: Optional[str],
        workspace: Optional[str],
        changes: Iterable[LineChange] = (),
    ) -> None:
        if self._state.stopped or not self._state.window_focused:
            logger.debug("Ignoring edit while the window is unfocused or stopped.")
            return
        added = self._comment_lines.record(list(changes))
        if added:
            self.store.add_comment_lines(added)
            self.store.set_comment_line_count(self.get_comment_line_count())
        self._dispatch(TextChanged(language=language, workspace=workspace))
        self._idle_timer.arm(self._get_scheduler())

    def on_debug_start(self) -> None:
        self._dispatch(DebugStarted())

    def on_debug_end(self) -> None:
        self._dispatch(DebugEnded())

    def on_debug_stderr(
        self,
        message: str,
        language: Optional[str] = None,
        workspace: Optional[str] = None,
    ) -> ErrorEvent:
        error = ErrorEvent(
            timestamp=self._clock(),
            message=message,
            language=normalize_language(language, self._state.last_language),
            workspace=normalize_workspace(workspace, self._state.last_workspace),
        )
        self.store.append_error(error)
        logger.debug("Recorded stderr output for %s", error.workspace)
        return error

    def on_git_commit(self) -> int:
        commits = self.store.get_commit_count() + 1
        self.store.set_commit_count(commits)
        logger.info("Git commit recorded (%d total).", commits)
        return commits

    def shutdown(self) -> None:
        """Flush the open interval; safe to call more than once."""
        if self._state.stopped:
            return
        self._idle_timer.cancel()
        self._dispatch(Shutdown())
        logger.info("Tracker stopped.")

    def get_entries(self) -> list[TimeInterval]:
        return self.store.get_entries()

    def get_errors(self) -> list[ErrorEvent]:
        return self.store.get_errors()

    def get_commit_count(self) -> int:
        return self.store.get_commit_count()

    def get_comment_line_count(self) -> int:
        return len(self._comment_lines)

    def _on_idle_timeout(self) -> None:
        self._dispatch(IdleTimeout())

    def _dispatch(self, signal: Signal) -> None:
        previous = self._state.category
        self._state, interval = transition(
            self._state,
            signal,
            self._clock(),
            idle_threshold_ms=self.settings.idle_threshold_ms,
        )
        if interval is not None:
            self.store.append_entry(interval)
        if self._state.category is not previous:
            logger.debug(
                "Category changed: %s -> %s (%s)",
                previous.value,
                self._state.category.value,
                type(signal).__name__,
            )

    def _get_scheduler(self) -> Scheduler:
        if self._scheduler is None:
            self._scheduler = asyncio.get_running_loop()
        return self._scheduler
