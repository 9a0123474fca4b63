from datetime import datetime, timedelta

from typer.testing import CliRunner

from dev_diary.cli import app
from dev_diary.db import database_connection
from dev_diary.models import Category, ErrorEvent, TimeInterval
from dev_diary.reporting import format_duration_ms
from dev_diary.store import ActivityStore

runner = CliRunner()


def _seed(db_path, start: datetime) -> None:
    begin = int(start.timestamp() * 1000)
    with database_connection(db_path) as conn:
        store = ActivityStore(conn)
        store.append_entry(TimeInterval(begin, begin + 1_800_000, Category.WRITING, "diary", "python"))
        store.append_entry(TimeInterval(begin + 1_800_000, begin + 2_700_000, Category.THINKING, "api", "go"))
        store.append_error(ErrorEvent(begin + 60_000, "Traceback", "python", "diary"))
        store.set_commit_count(3)


def test_format_duration_ms():
    assert format_duration_ms(0) == "00:00:00"
    assert format_duration_ms(3_723_400) == "01:02:03"


def test_summary_on_empty_database(tmp_path):
    result = runner.invoke(app, ["summary", "--db", str(tmp_path / "diary.sqlite3")])
    assert result.exit_code == 0
    assert "No activity recorded yet." in result.output


def test_summary_lists_projects(tmp_path):
    db_path = tmp_path / "diary.sqlite3"
    _seed(db_path, datetime.now() - timedelta(hours=1))

    result = runner.invoke(app, ["summary", "--db", str(db_path)])
    assert result.exit_code == 0
    assert "Top projects:" in result.output
    assert "diary" in result.output
    assert "Commits:        3" in result.output
    assert "Errors:         1" in result.output
    assert "Specialization: python (67%), go (33%)" in result.output


def test_timeline_prints_merged_spans(tmp_path):
    db_path = tmp_path / "diary.sqlite3"
    _seed(db_path, datetime(2024, 3, 6, 9, 0))

    result = runner.invoke(app, ["timeline", "--date", "2024-03-06", "--db", str(db_path)])
    assert result.exit_code == 0
    assert "09:00:00-09:30:00" in result.output
    assert "Active time: 00:45:00" in result.output


def test_timeline_rejects_bad_dates(tmp_path):
    result = runner.invoke(app, ["timeline", "--date", "March", "--db", str(tmp_path / "d.sqlite3")])
    assert result.exit_code != 0
