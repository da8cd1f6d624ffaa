"""Controllers for mission-control CLI commands."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import uvicorn
from sqlalchemy.engine import make_url

from mission_control.config import Settings
from mission_control.lifecycle.executor import SimulatedExecutor
from mission_control.lifecycle.worker import TaskLifecycleWorker
from mission_control.models import LogLevel, TaskPriority, TaskStatus, TaskView
from mission_control.repository import MissionControlRepository
from mission_control.services import MissionControlService
from mission_control.web import create_app

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StoreOptions:
    """Store location flags shared by every store command."""

    db_url: str | None = None
    db_path: Path | None = None


@dataclass(slots=True)
class TaskCreateCommand:
    """CLI inputs for task creation."""

    store: StoreOptions
    title: str
    description: str | None
    priority: str | None
    assign_to: str | None


@dataclass(slots=True)
class TaskRefCommand:
    """CLI inputs for commands addressing one task."""

    store: StoreOptions
    task_id: int


@dataclass(slots=True)
class TaskProgressCommand:
    """CLI inputs for progress updates."""

    store: StoreOptions
    task_id: int
    percentage: int
    step: str


@dataclass(slots=True)
class TaskCompleteCommand:
    """CLI inputs for manual completion."""

    store: StoreOptions
    task_id: int
    summary: str


@dataclass(slots=True)
class TaskListCommand:
    """CLI inputs for task listing."""

    store: StoreOptions
    status: str | None
    limit: int | None


@dataclass(slots=True)
class CostRecordCommand:
    """CLI inputs for cost entries."""

    store: StoreOptions
    amount: float
    description: str
    category: str | None


@dataclass(slots=True)
class LogWriteCommand:
    """CLI inputs for log rows."""

    store: StoreOptions
    message: str
    level: str
    source: str | None


@dataclass(slots=True)
class WorkerRunCommand:
    """CLI inputs for the lifecycle worker."""

    store: StoreOptions
    once: bool
    max_cycles: int | None
    max_tasks: int | None


@dataclass(slots=True)
class DbInitCommand:
    """CLI inputs for schema initialization."""

    store: StoreOptions
    seed: bool


@dataclass(slots=True)
class ServeCommand:
    """CLI inputs for the web server."""

    store: StoreOptions
    host: str | None
    port: int | None


class MissionControlCliController:
    """Coordinates mission-control command execution."""

    def create_task(self, command: TaskCreateCommand) -> list[str]:
        settings = _settings(command.store)
        with _service(settings) as service:
            task = service.create_task(
                title=command.title,
                description=command.description,
                priority=TaskPriority(command.priority) if command.priority else None,
                assigned_to=command.assign_to,
            )
        return [f"Task created: #{task.id}", _format_task(task)]

    def start_task(self, command: TaskRefCommand) -> list[str]:
        settings = _settings(command.store)
        with _service(settings) as service:
            task = service.start_task(command.task_id)
        return [f"Task started: #{task.id}", _format_task(task)]

    def update_progress(self, command: TaskProgressCommand) -> list[str]:
        settings = _settings(command.store)
        with _service(settings) as service:
            task = service.update_progress(command.task_id, command.percentage, command.step)
        return [f"Task #{task.id}: {command.step} ({task.progress_percentage}%)"]

    def complete_task(self, command: TaskCompleteCommand) -> list[str]:
        settings = _settings(command.store)
        with _service(settings) as service:
            task = service.complete_task(command.task_id, command.summary)
        return [f"Task completed: #{task.id}", _format_task(task)]

    def pending(self, store: StoreOptions) -> list[str]:
        settings = _settings(store)
        with _service(settings) as service:
            tasks = service.pending_tasks()
        if not tasks:
            return ["No pending tasks."]
        lines = [f"Pending tasks: {len(tasks)}"]
        lines.extend(_format_task(task) for task in tasks)
        return lines

    def list_tasks(self, command: TaskListCommand) -> list[str]:
        settings = _settings(command.store)
        status_filter = _parse_status(command.status)
        with _repository(settings) as repository:
            tasks = repository.list_tasks(status=status_filter, limit=command.limit)

        lines = [f"Tasks: {len(tasks)}"]
        lines.extend(_format_task(task) for task in tasks)
        return lines

    def record_cost(self, command: CostRecordCommand) -> list[str]:
        settings = _settings(command.store)
        with _service(settings) as service:
            cost = service.record_cost(
                amount=command.amount,
                description=command.description,
                category=command.category,
            )
        return [
            f"Cost recorded: #{cost.id} amount={cost.amount:.2f} "
            f"category={cost.category or '-'} description={cost.description or '-'}",
        ]

    def write_log(self, command: LogWriteCommand) -> list[str]:
        settings = _settings(command.store)
        with _service(settings) as service:
            log = service.write_log(
                command.message,
                level=LogLevel(command.level),
                source=command.source,
            )
        return [f"Log written: #{log.id} [{log.level.value}] {log.source or '-'}: {log.message}"]

    def status(self, store: StoreOptions) -> list[str]:
        settings = _settings(store)
        with _service(settings) as service:
            summary = service.status()
        lines = [f"Tasks: total={summary.total_tasks}"]
        lines.extend(f"  {status.value}={summary.count(status)}" for status in TaskStatus)
        lines.append(f"Total costs: {summary.total_costs:.2f}")
        return lines

    def run_worker(self, command: WorkerRunCommand) -> list[str]:
        settings = _settings(command.store)
        lifecycle = settings.lifecycle
        with _repository(settings) as repository:
            worker = TaskLifecycleWorker(
                repository=repository,
                executor=SimulatedExecutor.with_default_steps(
                    delay_seconds=lifecycle.step_delay_seconds,
                    jitter_seconds=lifecycle.step_jitter_seconds,
                ),
                poll_interval_seconds=lifecycle.poll_interval_seconds,
                assign_interval_seconds=lifecycle.assign_interval_seconds,
                worker_prefix=lifecycle.worker_prefix,
            )
            logger.info(
                "Lifecycle worker started: poll_interval=%.1fs step_delay=%.1fs",
                lifecycle.poll_interval_seconds,
                lifecycle.step_delay_seconds,
            )
            summary = (
                worker.run_once(max_tasks=command.max_tasks)
                if command.once
                else worker.run_loop(
                    max_cycles=command.max_cycles,
                    max_tasks=command.max_tasks,
                )
            )

        return [
            "Worker summary: "
            f"polls={summary.polls} assigned={summary.assigned} "
            f"completed={summary.completed} canceled={summary.canceled} "
            f"lost_claims={summary.lost_claims} poll_errors={summary.poll_errors} "
            f"task_errors={summary.task_errors} "
            f"idle_polls={summary.idle_polls}",
        ]

    def init_db(self, command: DbInitCommand) -> list[str]:
        settings = _settings(command.store)
        with _service(settings) as service:
            lines = [f"Schema is up to date: {_redact(settings.require_database_url())}"]
            if command.seed:
                seeded = service.seed_sample_data()
                lines.append(
                    f"Sample data inserted: tasks={seeded.tasks} "
                    f"costs={seeded.costs} logs={seeded.logs}",
                )
        return lines

    def serve(self, command: ServeCommand) -> list[str]:
        settings = _settings(command.store)
        host = command.host or settings.web.host
        port = command.port or settings.web.port
        uvicorn.run(create_app(settings), host=host, port=port, log_config=None)
        return [f"Server stopped: http://{host}:{port}"]


def _settings(store: StoreOptions) -> Settings:
    return Settings.from_env(database_url=store.db_url, db_path=store.db_path)


def _parse_status(value: str | None) -> TaskStatus | None:
    if value is None:
        return None
    return TaskStatus(value.strip().lower())


def _format_task(task: TaskView) -> str:
    priority = task.priority.value if task.priority is not None else "-"
    return (
        f"  #{task.id} [{task.status.value}] priority={priority} "
        f"progress={task.progress_percentage or 0}% "
        f"assigned_to={task.assigned_to or '-'} title={task.title}"
    )


def _redact(database_url: str) -> str:
    return make_url(database_url).render_as_string(hide_password=True)


@contextmanager
def _repository(settings: Settings) -> Iterator[MissionControlRepository]:
    repository = MissionControlRepository(
        settings.require_database_url(),
        sqlite_busy_timeout_ms=settings.store.sqlite_busy_timeout_ms,
    )
    repository.init_schema()
    try:
        yield repository
    finally:
        repository.close()


@contextmanager
def _service(settings: Settings) -> Iterator[MissionControlService]:
    with _repository(settings) as repository:
        yield MissionControlService(repository=repository)
