from __future__ import annotations

from pathlib import Path

import allure
from click.testing import CliRunner

from mission_control.config import sqlite_url
from mission_control.main import mission_control
from mission_control.models import TaskStatus
from mission_control.repository import MissionControlRepository

pytestmark = [
    allure.epic("Operations"),
    allure.feature("Command Line"),
]

_FAST_WORKER_ENV = {
    "MISSION_CONTROL_STEP_DELAY_SECONDS": "0",
    "MISSION_CONTROL_ASSIGN_INTERVAL_SECONDS": "0",
    "MISSION_CONTROL_POLL_INTERVAL_SECONDS": "0",
}


def _invoke(args: list[str], env: dict[str, str] | None = None):
    return CliRunner().invoke(mission_control, args, env=env)


def test_task_tracking_commands(tmp_path: Path) -> None:
    db_path = str(tmp_path / "cli.db")

    created = _invoke(
        ["tasks", "create", "Optimize backend", "--priority", "high", "--db-path", db_path],
    )
    assert created.exit_code == 0, created.output
    assert "Task created: #1" in created.output

    started = _invoke(["tasks", "start", "1", "--db-path", db_path])
    assert started.exit_code == 0, started.output
    assert "[in_progress]" in started.output

    progressed = _invoke(["tasks", "progress", "1", "50", "Refactoring", "--db-path", db_path])
    assert progressed.exit_code == 0, progressed.output
    assert "Task #1: Refactoring (50%)" in progressed.output

    completed = _invoke(["tasks", "complete", "1", "Backend optimized", "--db-path", db_path])
    assert completed.exit_code == 0, completed.output
    assert "Task completed: #1" in completed.output

    repository = MissionControlRepository(sqlite_url(Path(db_path)))
    task = repository.get_task(1)
    repository.close()
    assert task is not None
    assert task.status == TaskStatus.COMPLETED
    assert task.progress_percentage == 100
    assert task.description is not None
    assert task.description.startswith("Backend optimized")


def test_list_and_pending_commands(tmp_path: Path) -> None:
    db_path = str(tmp_path / "cli.db")
    _invoke(["tasks", "create", "low one", "--priority", "low", "--db-path", db_path])
    _invoke(["tasks", "create", "high one", "--priority", "high", "--db-path", db_path])

    pending = _invoke(["tasks", "pending", "--db-path", db_path])
    assert pending.exit_code == 0, pending.output
    lines = pending.output.splitlines()
    header = lines.index("Pending tasks: 2")
    assert "title=high one" in lines[header + 1]
    assert "title=low one" in lines[header + 2]

    listed = _invoke(["tasks", "list", "--status", "pending", "--limit", "1", "--db-path", db_path])
    assert listed.exit_code == 0, listed.output
    assert "Tasks: 1" in listed.output
    assert "title=high one" in listed.output


def test_cost_log_and_status_commands(tmp_path: Path) -> None:
    db_path = str(tmp_path / "cli.db")

    cost = _invoke(["costs", "record", "12.5", "LLM API calls", "--db-path", db_path])
    assert cost.exit_code == 0, cost.output
    assert "amount=12.50 category=api" in cost.output

    log = _invoke(
        ["logs", "write", "Backup done", "--level", "warning", "--source", "ops", "--db-path", db_path],
    )
    assert log.exit_code == 0, log.output
    assert "[warning] ops: Backup done" in log.output

    _invoke(["tasks", "create", "Pending work", "--db-path", db_path])
    status = _invoke(["status", "--db-path", db_path])
    assert status.exit_code == 0, status.output
    assert "Tasks: total=1" in status.output
    assert "pending=1" in status.output
    assert "Total costs: 12.50" in status.output


def test_worker_run_once_completes_pending_tasks(tmp_path: Path) -> None:
    db_path = str(tmp_path / "cli.db")
    _invoke(["tasks", "create", "Automated", "--db-path", db_path])
    _invoke(["tasks", "create", "Manual", "--assign-to", "main-agent", "--db-path", db_path])

    result = _invoke(["worker", "run", "--once", "--db-path", db_path], env=_FAST_WORKER_ENV)

    assert result.exit_code == 0, result.output
    assert "assigned=1 completed=1" in result.output
    repository = MissionControlRepository(sqlite_url(Path(db_path)))
    statuses = {task.title: task.status for task in repository.list_tasks()}
    repository.close()
    assert statuses == {"Automated": TaskStatus.COMPLETED, "Manual": TaskStatus.PENDING}


def test_worker_loop_stops_after_max_cycles(tmp_path: Path) -> None:
    db_path = str(tmp_path / "cli.db")

    result = _invoke(
        ["worker", "run", "--loop", "--max-cycles", "2", "--db-path", db_path],
        env=_FAST_WORKER_ENV,
    )

    assert result.exit_code == 0, result.output
    assert "polls=2" in result.output
    assert "idle_polls=2" in result.output


def test_db_init_with_seed(tmp_path: Path) -> None:
    database_url = sqlite_url(tmp_path / "seeded.db")

    result = _invoke(["db", "init", "--seed", "--db-url", database_url])

    assert result.exit_code == 0, result.output
    assert "Schema is up to date" in result.output
    assert "Sample data inserted: tasks=5 costs=3 logs=4" in result.output


def test_store_commands_require_configuration() -> None:
    result = _invoke(["tasks", "pending"])

    assert result.exit_code != 0
    assert "Database not configured" in result.output


def test_unknown_task_is_reported(tmp_path: Path) -> None:
    result = _invoke(["tasks", "start", "42", "--db-path", str(tmp_path / "cli.db")])

    assert result.exit_code != 0
    assert "Task not found: #42" in result.output


def test_invalid_choices_are_rejected(tmp_path: Path) -> None:
    db_path = str(tmp_path / "cli.db")

    assert _invoke(["tasks", "create", "x", "--priority", "urgent", "--db-path", db_path]).exit_code
    assert _invoke(["tasks", "progress", "1", "150", "step", "--db-path", db_path]).exit_code
    assert _invoke(["costs", "record", "-3", "refund", "--db-path", db_path]).exit_code
