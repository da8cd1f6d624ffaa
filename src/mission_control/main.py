"""CLI entrypoint for mission-control."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import rich_click as click
from sqlalchemy.exc import SQLAlchemyError

from mission_control import __version__
from mission_control.controllers import (
    CostRecordCommand,
    DbInitCommand,
    LogWriteCommand,
    MissionControlCliController,
    ServeCommand,
    StoreOptions,
    TaskCompleteCommand,
    TaskCreateCommand,
    TaskListCommand,
    TaskProgressCommand,
    TaskRefCommand,
    WorkerRunCommand,
)
from mission_control.logging_setup import setup_logging
from mission_control.models import LogLevel, TaskPriority, TaskStatus

click.rich_click.USE_MARKDOWN = True
CONTROLLER = MissionControlCliController()

F = TypeVar("F", bound=Callable[..., Any])


def store_options(func: F) -> F:
    """Attach ``--db-url`` / ``--db-path`` to a store command."""

    func = click.option(
        "--db-path",
        type=click.Path(path_type=Path),
        default=None,
        help="SQLite DB path (shortcut for a sqlite:/// URL).",
    )(func)
    return click.option(
        "--db-url",
        default=None,
        help="SQLAlchemy database URL. Overrides MISSION_CONTROL_DATABASE_URL.",
    )(func)


@click.group()
@click.version_option(version=__version__, prog_name="mission-control")
def mission_control() -> None:
    """Mission control dashboard, task tracking and lifecycle worker."""

    setup_logging(level=os.getenv("MISSION_CONTROL_LOG_LEVEL", "INFO"))


@mission_control.group()
def tasks() -> None:
    """Task tracking commands."""


@tasks.command("create")
@store_options
@click.argument("title")
@click.option("--description", default=None, help="Free-form task description.")
@click.option(
    "--priority",
    type=click.Choice([item.value for item in TaskPriority]),
    default=None,
    help="Task priority (store default: medium).",
)
@click.option(
    "--assign-to",
    default=None,
    help="Assignee label. Leave unset to let the lifecycle worker claim the task.",
)
def tasks_create(  # noqa: PLR0913
    db_url: str | None,
    db_path: Path | None,
    title: str,
    description: str | None,
    priority: str | None,
    assign_to: str | None,
) -> None:
    """Create a pending task."""

    _emit_lines(
        _run(
            CONTROLLER.create_task,
            TaskCreateCommand(
                store=StoreOptions(db_url=db_url, db_path=db_path),
                title=title,
                description=description,
                priority=priority,
                assign_to=assign_to,
            ),
        ),
    )


@tasks.command("start")
@store_options
@click.argument("task_id", type=int)
def tasks_start(db_url: str | None, db_path: Path | None, task_id: int) -> None:
    """Move a task to in_progress."""

    _emit_lines(
        _run(
            CONTROLLER.start_task,
            TaskRefCommand(store=StoreOptions(db_url=db_url, db_path=db_path), task_id=task_id),
        ),
    )


@tasks.command("progress")
@store_options
@click.argument("task_id", type=int)
@click.argument("percentage", type=click.IntRange(min=0, max=100))
@click.argument("step")
def tasks_progress(
    db_url: str | None,
    db_path: Path | None,
    task_id: int,
    percentage: int,
    step: str,
) -> None:
    """Record percent complete and the step just finished."""

    _emit_lines(
        _run(
            CONTROLLER.update_progress,
            TaskProgressCommand(
                store=StoreOptions(db_url=db_url, db_path=db_path),
                task_id=task_id,
                percentage=percentage,
                step=step,
            ),
        ),
    )


@tasks.command("complete")
@store_options
@click.argument("task_id", type=int)
@click.argument("summary")
def tasks_complete(db_url: str | None, db_path: Path | None, task_id: int, summary: str) -> None:
    """Mark a task completed with a summary and elapsed time."""

    _emit_lines(
        _run(
            CONTROLLER.complete_task,
            TaskCompleteCommand(
                store=StoreOptions(db_url=db_url, db_path=db_path),
                task_id=task_id,
                summary=summary,
            ),
        ),
    )


@tasks.command("pending")
@store_options
def tasks_pending(db_url: str | None, db_path: Path | None) -> None:
    """List pending tasks in the order the worker would take them."""

    _emit_lines(_run(CONTROLLER.pending, StoreOptions(db_url=db_url, db_path=db_path)))


@tasks.command("list")
@store_options
@click.option(
    "--status",
    type=click.Choice([item.value for item in TaskStatus]),
    default=None,
    help="Only show tasks with this status.",
)
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=1000),
    default=50,
    show_default=True,
    help="Max number of tasks to print.",
)
def tasks_list(db_url: str | None, db_path: Path | None, status: str | None, limit: int) -> None:
    """List tasks, newest first."""

    _emit_lines(
        _run(
            CONTROLLER.list_tasks,
            TaskListCommand(
                store=StoreOptions(db_url=db_url, db_path=db_path),
                status=status,
                limit=limit,
            ),
        ),
    )


@mission_control.group()
def costs() -> None:
    """Cost tracking commands."""


@costs.command("record")
@store_options
@click.argument("amount", type=click.FloatRange(min=0))
@click.argument("description")
@click.option("--category", default="api", show_default=True, help="Cost category.")
def costs_record(
    db_url: str | None,
    db_path: Path | None,
    amount: float,
    description: str,
    category: str,
) -> None:
    """Record a cost entry."""

    _emit_lines(
        _run(
            CONTROLLER.record_cost,
            CostRecordCommand(
                store=StoreOptions(db_url=db_url, db_path=db_path),
                amount=amount,
                description=description,
                category=category,
            ),
        ),
    )


@mission_control.group()
def logs() -> None:
    """Activity log commands."""


@logs.command("write")
@store_options
@click.argument("message")
@click.option(
    "--level",
    type=click.Choice([item.value for item in LogLevel]),
    default=LogLevel.INFO.value,
    show_default=True,
    help="Log level.",
)
@click.option("--source", default=None, help="Log source (default: agent).")
def logs_write(
    db_url: str | None,
    db_path: Path | None,
    message: str,
    level: str,
    source: str | None,
) -> None:
    """Append a log row."""

    _emit_lines(
        _run(
            CONTROLLER.write_log,
            LogWriteCommand(
                store=StoreOptions(db_url=db_url, db_path=db_path),
                message=message,
                level=level,
                source=source,
            ),
        ),
    )


@mission_control.command("status")
@store_options
def status(db_url: str | None, db_path: Path | None) -> None:
    """Show task counts by status and total costs."""

    _emit_lines(_run(CONTROLLER.status, StoreOptions(db_url=db_url, db_path=db_path)))


@mission_control.group()
def worker() -> None:
    """Task lifecycle worker commands."""


@worker.command("run")
@store_options
@click.option(
    "--once/--loop",
    default=False,
    show_default=True,
    help="Run a single polling cycle instead of polling until interrupted.",
)
@click.option(
    "--max-cycles",
    type=click.IntRange(min=1),
    default=None,
    help="Stop the loop after this many polling cycles.",
)
@click.option(
    "--max-tasks",
    type=click.IntRange(min=1),
    default=None,
    help="Stop after this many tasks were assigned.",
)
def worker_run(
    db_url: str | None,
    db_path: Path | None,
    once: bool,
    max_cycles: int | None,
    max_tasks: int | None,
) -> None:
    """Poll pending tasks, assign them to generated workers and run them to completion.

    Ctrl+C stops polling after the current task; a second Ctrl+C cancels it.
    """

    _emit_lines(
        _run(
            CONTROLLER.run_worker,
            WorkerRunCommand(
                store=StoreOptions(db_url=db_url, db_path=db_path),
                once=once,
                max_cycles=max_cycles,
                max_tasks=max_tasks,
            ),
        ),
    )


@mission_control.group()
def db() -> None:
    """Database commands."""


@db.command("init")
@store_options
@click.option(
    "--seed/--no-seed",
    default=False,
    show_default=True,
    help="Insert sample tasks, costs and logs.",
)
def db_init(db_url: str | None, db_path: Path | None, seed: bool) -> None:
    """Run schema migrations to head."""

    _emit_lines(
        _run(
            CONTROLLER.init_db,
            DbInitCommand(store=StoreOptions(db_url=db_url, db_path=db_path), seed=seed),
        ),
    )


@mission_control.command("serve")
@store_options
@click.option("--host", default=None, help="Bind host (default: MISSION_CONTROL_HOST).")
@click.option(
    "--port",
    type=click.IntRange(min=1, max=65_535),
    default=None,
    help="Bind port (default: MISSION_CONTROL_PORT).",
)
def serve(db_url: str | None, db_path: Path | None, host: str | None, port: int | None) -> None:
    """Serve the dashboard and JSON API with uvicorn."""

    _emit_lines(
        _run(
            CONTROLLER.serve,
            ServeCommand(
                store=StoreOptions(db_url=db_url, db_path=db_path),
                host=host,
                port=port,
            ),
        ),
    )


def _run(handler: Callable[[Any], list[str]], command: Any) -> list[str]:
    try:
        return handler(command)
    except SQLAlchemyError as error:
        raise click.ClickException(f"Store error: {error.__class__.__name__}") from error
    except (RuntimeError, ValueError) as error:
        raise click.ClickException(str(error)) from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    mission_control()
