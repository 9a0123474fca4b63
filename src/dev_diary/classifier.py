"""Pure state machine that turns editor signals into labelled intervals.

The classifier never touches clocks, timers or storage. Callers thread a
:class:`ClassifierState` through :func:`transition` together with the time the
signal was observed, and persist whatever interval comes back.

Debugging overrides every other state. While a debug session runs, focus
changes only update ``Debugging.resume_to``, which decides where the machine
lands once the session ends.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, NamedTuple, Optional, Union

from .models import UNKNOWN, Category, TimeInterval
from .normalization import is_comment_line, normalize_language, normalize_workspace

IDLE_THRESHOLD_MS = 10_000


@dataclass(frozen=True, slots=True)
class Tracking:
    """Not debugging: writing, thinking or resting."""

    category: Category = Category.REST


@dataclass(frozen=True, slots=True)
class Debugging:
    """A debug session is running; ``resume_to`` applies when it ends."""

    resume_to: Category = Category.REST

    @property
    def category(self) -> Category:
        return Category.DEBUGGING


Mode = Union[Tracking, Debugging]


@dataclass(frozen=True, slots=True)
class ClassifierState:
    current_start: int
    mode: Mode = field(default_factory=Tracking)
    last_input: int = 0
    window_focused: bool = False
    last_workspace: str = UNKNOWN
    last_language: str = UNKNOWN
    stopped: bool = False

    @property
    def category(self) -> Category:
        return self.mode.category

    @property
    def debugging(self) -> bool:
        return isinstance(self.mode, Debugging)

    @classmethod
    def initial(cls, now: int) -> "ClassifierState":
        return cls(current_start=now)


@dataclass(frozen=True, slots=True)
class FocusChanged:
    focused: bool


@dataclass(frozen=True, slots=True)
class TextChanged:
    language: Optional[str] = None
    workspace: Optional[str] = None


@dataclass(frozen=True, slots=True)
class DebugStarted:
    pass


@dataclass(frozen=True, slots=True)
class DebugEnded:
    pass


@dataclass(frozen=True, slots=True)
class IdleTimeout:
    pass


@dataclass(frozen=True, slots=True)
class Shutdown:
    pass


Signal = Union[FocusChanged, TextChanged, DebugStarted, DebugEnded, IdleTimeout, Shutdown]


class Transition(NamedTuple):
    state: ClassifierState
    interval: Optional[TimeInterval]


def transition(
    state: ClassifierState,
    signal: Signal,
    now: int,
    *,
    idle_threshold_ms: int = IDLE_THRESHOLD_MS,
) -> Transition:
    """Apply one signal and return the new state plus any closed interval.

    Shutdown is terminal: once the open interval is flushed, every later signal
    is ignored.
    """
    if state.stopped:
        return Transition(state, None)
    if isinstance(signal, FocusChanged):
        return _on_focus(state, signal.focused, now)
    if isinstance(signal, TextChanged):
        return _on_text(state, signal, now)
    if isinstance(signal, DebugStarted):
        if state.debugging:
            return Transition(state, None)
        return _switch(state, Debugging(resume_to=_resting_category(state)), now)
    if isinstance(signal, DebugEnded):
        if not isinstance(state.mode, Debugging):
            return Transition(state, None)
        return _switch(state, Tracking(state.mode.resume_to), now)
    if isinstance(signal, IdleTimeout):
        # The timer may be stale: a newer edit can land after it was armed.
        if state.category is Category.WRITING and now - state.last_input > idle_threshold_ms:
            return _switch(state, Tracking(Category.THINKING), now)
        return Transition(state, None)
    if isinstance(signal, Shutdown):
        closed = _close(state, now)
        stopped = replace(state, current_start=max(now, state.current_start), stopped=True)
        return Transition(stopped, closed)
    raise TypeError(f"Unsupported signal: {signal!r}")


def _on_focus(state: ClassifierState, focused: bool, now: int) -> Transition:
    state = replace(state, window_focused=focused)
    if state.debugging:
        return _switch(state, Debugging(resume_to=_resting_category(state)), now)
    return _switch(state, Tracking(Category.THINKING if focused else Category.REST), now)


def _on_text(state: ClassifierState, signal: TextChanged, now: int) -> Transition:
    if not state.window_focused:
        return Transition(state, None)
    state = replace(
        state,
        last_input=now,
        last_language=normalize_language(signal.language, state.last_language),
        last_workspace=normalize_workspace(signal.workspace, state.last_workspace),
    )
    if state.debugging:
        return Transition(state, None)
    return _switch(state, Tracking(Category.WRITING), now)


def _resting_category(state: ClassifierState) -> Category:
    return Category.THINKING if state.window_focused else Category.REST


def _switch(state: ClassifierState, target: Mode, now: int) -> Transition:
    if target.category is state.category:
        return Transition(replace(state, mode=target), None)
    closed = _close(state, now)
    return Transition(replace(state, mode=target, current_start=now), closed)


def _close(state: ClassifierState, now: int) -> Optional[TimeInterval]:
    if now <= state.current_start:
        return None
    return TimeInterval(
        start=state.current_start,
        end=now,
        category=state.category,
        workspace=state.last_workspace,
        language=state.last_language,
    )


@dataclass(frozen=True, slots=True)
class LineChange:
    """One edited line: its number, its full text after the edit, and what was inserted."""

    line: int
    line_text: str
    inserted_text: str = ""


class CommentLineCounter:
    """Remembers which line numbers were edited into comments."""

    def __init__(self, lines: Iterable[int] = ()) -> None:
        self._lines: set[int] = set(lines)

    def record(self, changes: list[LineChange]) -> list[int]:
        """Record comment lines; return the line numbers seen for the first time."""
        added: list[int] = []
        for change in changes:
            if not change.inserted_text.strip():
                continue
            if is_comment_line(change.line_text) and change.line not in self._lines:
                self._lines.add(change.line)
                added.append(change.line)
        return added

    def __len__(self) -> int:
        return len(self._lines)
