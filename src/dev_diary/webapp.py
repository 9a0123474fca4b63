"""FastAPI application that receives editor signals and serves the analytics."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import date, datetime
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from .analytics import aggregate
from .classifier import LineChange
from .config import AnalyticsSettings, TrackerSettings
from .db import DbPath, open_database
from .paths import get_db_path
from .store import ActivityStore
from .timeline import merge_day, total_duration
from .tracker import ActivityTracker, Clock, wall_clock_ms

logger = logging.getLogger(__name__)


class FocusPayload(BaseModel):
    focused: bool

    model_config = ConfigDict(extra="forbid")


class LineChangePayload(BaseModel):
    line: int = Field(ge=0)
    line_text: str
    inserted_text: str = ""

    model_config = ConfigDict(extra="forbid")


class EditPayload(BaseModel):
    language: Optional[str] = None
    workspace: Optional[str] = None
    changes: List[LineChangePayload] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class StderrPayload(BaseModel):
    message: str
    language: Optional[str] = None
    workspace: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    db_path: Optional[DbPath] = None,
    settings: Optional[TrackerSettings] = None,
    analytics_settings: Optional[AnalyticsSettings] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_db_path = db_path or get_db_path()
    resolved_settings = settings or TrackerSettings()
    resolved_analytics = analytics_settings or AnalyticsSettings()
    resolved_clock = clock or wall_clock_ms

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        # Signals are handled on the loop thread, not the thread that built the app.
        conn = open_database(resolved_db_path, check_same_thread=False)
        tracker = ActivityTracker(
            ActivityStore(conn),
            resolved_settings,
            clock=resolved_clock,
            scheduler=asyncio.get_running_loop(),
        )
        app.state.tracker = tracker
        logger.info("Tracker started; writing to %s", resolved_db_path)
        try:
            yield
        finally:
            try:
                tracker.shutdown()
            finally:
                tracker.store.close()
                app.state.tracker = None

    app = FastAPI(title="Dev Diary", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.db_path = resolved_db_path
    app.state.tracker = None

    @app.get("/api/status")
    async def status(request: Request) -> Dict[str, Any]:
        tracker = _get_tracker(request)
        state = tracker.state
        return {
            "database_path": str(request.app.state.db_path),
            "category": state.category.value,
            "window_focused": state.window_focused,
            "debugging": state.debugging,
            "idle_timer_pending": tracker.idle_timer_pending,
            "idle_seconds": resolved_settings.idle_timeout.total_seconds(),
        }

    @app.post("/api/signals/focus")
    async def focus_signal(payload: FocusPayload, request: Request) -> Dict[str, Any]:
        tracker = _get_tracker(request)
        tracker.on_focus_change(payload.focused)
        return _state_payload(tracker)

    @app.post("/api/signals/edit")
    async def edit_signal(payload: EditPayload, request: Request) -> Dict[str, Any]:
        tracker = _get_tracker(request)
        changes = [
            LineChange(
                line=change.line,
                line_text=change.line_text,
                inserted_text=change.inserted_text,
            )
            for change in payload.changes
        ]
        tracker.on_text_edit(payload.language, payload.workspace, changes)
        return _state_payload(tracker)

    @app.post("/api/signals/debug/start")
    async def debug_start_signal(request: Request) -> Dict[str, Any]:
        tracker = _get_tracker(request)
        tracker.on_debug_start()
        return _state_payload(tracker)

    @app.post("/api/signals/debug/end")
    async def debug_end_signal(request: Request) -> Dict[str, Any]:
        tracker = _get_tracker(request)
        tracker.on_debug_end()
        return _state_payload(tracker)

    @app.post("/api/signals/stderr")
    async def stderr_signal(payload: StderrPayload, request: Request) -> Dict[str, Any]:
        tracker = _get_tracker(request)
        error = tracker.on_debug_stderr(payload.message, payload.language, payload.workspace)
        return {"error": error.to_record()}

    @app.post("/api/signals/commit")
    async def commit_signal(request: Request) -> Dict[str, Any]:
        tracker = _get_tracker(request)
        return {"commits": tracker.on_git_commit()}

    @app.get("/api/entries")
    async def entries(request: Request) -> Dict[str, Any]:
        tracker = _get_tracker(request)
        return {"entries": [entry.to_record() for entry in tracker.get_entries()]}

    @app.get("/api/errors")
    async def errors(request: Request) -> Dict[str, Any]:
        tracker = _get_tracker(request)
        return {"errors": [error.to_record() for error in tracker.get_errors()]}

    @app.get("/api/counters")
    async def counters(request: Request) -> Dict[str, Any]:
        tracker = _get_tracker(request)
        return {
            "commits": tracker.get_commit_count(),
            "comment_lines": tracker.get_comment_line_count(),
        }

    @app.get("/api/metrics")
    async def metrics(request: Request) -> Dict[str, Any]:
        tracker = _get_tracker(request)
        result = aggregate(
            tracker.get_entries(),
            tracker.get_errors(),
            resolved_clock(),
            settings=resolved_analytics,
        )
        return asdict(result)

    @app.get("/api/timeline")
    async def timeline(
        request: Request,
        date: Optional[str] = Query(
            default=None,
            description="Target date in YYYY-MM-DD format. Defaults to today.",
        ),
    ) -> Dict[str, Any]:
        tracker = _get_tracker(request)
        target_day = _parse_date(date, resolved_clock)
        spans = merge_day(tracker.get_entries(), target_day)
        return {
            "date": target_day.isoformat(),
            "total_ms": total_duration(spans),
            "spans": [asdict(span) for span in spans],
        }

    return app


def _get_tracker(request: Request) -> ActivityTracker:
    tracker: Optional[ActivityTracker] = request.app.state.tracker
    if tracker is None:
        raise HTTPException(status_code=503, detail="Tracker is not running")
    return tracker


def _state_payload(tracker: ActivityTracker) -> Dict[str, Any]:
    return {"category": tracker.state.category.value}


def _parse_date(value: Optional[str], clock: Clock) -> date:
    if not value:
        return datetime.fromtimestamp(clock() / 1000).date()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid date format") from exc
