"""Command-line interface for the dev diary."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from .config import TrackerSettings
from .paths import get_db_path
from .server_runner import run_server

app = typer.Typer(help="Infer writing, thinking and debugging time from editor signals.")


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the service."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the service."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the diary SQLite database."
    ),
    idle_seconds: float = typer.Option(
        11.0,
        "--idle-timeout",
        min=1.0,
        help="Seconds after the last keystroke before writing turns into thinking.",
    ),
) -> None:
    """Run the service that editor extensions report signals to."""
    settings = TrackerSettings.from_intervals(idle_seconds=idle_seconds)
    run_server(
        host=host,
        port=port,
        db_path=db_path or get_db_path(),
        settings=settings,
    )


@app.command()
def summary(
    db_path: Optional[Path] = typer.Option(
        None,
        "--db",
        path_type=Path,
        help="Location of the diary SQLite database.",
    ),
) -> None:
    """Print rolling totals, top projects and languages."""
    from .reporting import SummaryPrinter

    SummaryPrinter(db_path=db_path or get_db_path()).print_summary()


@app.command()
def timeline(
    date: Optional[str] = typer.Option(
        None,
        "--date",
        help="Date (YYYY-MM-DD) to show. Defaults to today.",
    ),
    db_path: Optional[Path] = typer.Option(
        None,
        "--db",
        path_type=Path,
        help="Location of the diary SQLite database.",
    ),
) -> None:
    """Print the merged active spans of a single day."""
    from .reporting import SummaryPrinter

    try:
        target = datetime.strptime(date, "%Y-%m-%d") if date else datetime.now()
    except ValueError as exc:
        raise typer.BadParameter("Expected YYYY-MM-DD", param_hint="--date") from exc
    SummaryPrinter(db_path=db_path or get_db_path()).print_timeline(target.date())
