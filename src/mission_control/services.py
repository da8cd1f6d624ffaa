"""Operator use cases shared by the CLI commands."""

from __future__ import annotations

from dataclasses import dataclass

from mission_control.models import (
    CostCreate,
    CostView,
    LogCreate,
    LogLevel,
    LogView,
    StatusSummary,
    TaskCreate,
    TaskPriority,
    TaskStatus,
    TaskView,
)
from mission_control.repository import MissionControlRepository
from mission_control.storage.common import utc_now

DEFAULT_OPERATOR_SOURCE = "agent"
DEFAULT_COST_CATEGORY = "api"
TITLE_MAX_LENGTH = 100


@dataclass(slots=True)
class SeedResult:
    """Row counts inserted by ``seed_sample_data``."""

    tasks: int
    costs: int
    logs: int


SAMPLE_TASKS = (
    TaskCreate(
        title="Optimize database queries",
        description="Reduce response time",
        status=TaskStatus.IN_PROGRESS,
        priority=TaskPriority.HIGH,
        assigned_to="main-agent",
    ),
    TaskCreate(
        title="Add Redis cache",
        description="Introduce a caching layer",
        priority=TaskPriority.HIGH,
    ),
    TaskCreate(
        title="Update documentation",
        description="Document the new endpoints",
        priority=TaskPriority.MEDIUM,
    ),
    TaskCreate(
        title="Review error logs",
        description="Analyze recurring errors",
        priority=TaskPriority.LOW,
    ),
    TaskCreate(
        title="Deploy v2.0 to production",
        description="Ship the new version",
        status=TaskStatus.COMPLETED,
        priority=TaskPriority.HIGH,
        progress_percentage=100,
    ),
)

SAMPLE_COSTS = (
    CostCreate(amount=29.99, description="Hosting monthly subscription", category="infrastructure"),
    CostCreate(amount=25.00, description="Managed database plan", category="database"),
    CostCreate(amount=12.50, description="LLM API calls", category="ai"),
)

SAMPLE_LOGS = (
    LogCreate(message="System started", level=LogLevel.INFO, source="system"),
    LogCreate(message="High load detected on server", level=LogLevel.WARNING, source="monitoring"),
    LogCreate(message="Database connection established", level=LogLevel.INFO, source="database"),
    LogCreate(message="Backup completed", level=LogLevel.INFO, source="system"),
)


class MissionControlService:
    """Task tracking operations an operator runs by hand."""

    def __init__(
        self,
        *,
        repository: MissionControlRepository,
        source: str = DEFAULT_OPERATOR_SOURCE,
    ) -> None:
        self.repository = repository
        self.source = source

    def create_task(
        self,
        *,
        title: str,
        description: str | None = None,
        priority: TaskPriority | None = None,
        assigned_to: str | None = None,
    ) -> TaskView:
        title = title.strip()
        if not title:
            raise ValueError("Task title must not be empty.")
        task = self.repository.create_task(
            TaskCreate(
                title=title[:TITLE_MAX_LENGTH],
                description=description,
                priority=priority,
                assigned_to=assigned_to,
            ),
        )
        self._log(f"Task created: #{task.id} {task.title}", metadata={"task_id": task.id})
        return task

    def start_task(self, task_id: int) -> TaskView:
        task = self._require(task_id)
        updated = self.repository.update_task(
            task.id,
            {"status": TaskStatus.IN_PROGRESS, "progress_percentage": task.progress_percentage or 0},
        )
        self._log(f"Task #{task_id} started", metadata={"task_id": task_id})
        return self._require_updated(updated, task_id)

    def update_progress(self, task_id: int, percentage: int, step: str) -> TaskView:
        """Store percent complete and log the step that was just finished."""

        if not 0 <= percentage <= 100:
            raise ValueError("Progress percentage must be between 0 and 100.")
        self._require(task_id)
        updated = self.repository.update_task(task_id, {"progress_percentage": percentage})
        self._log(
            f"Task #{task_id}: {step} ({percentage}%)",
            metadata={"task_id": task_id, "percentage": percentage},
        )
        return self._require_updated(updated, task_id)

    def complete_task(self, task_id: int, summary: str) -> TaskView:
        """Mark a task completed; the summary gets an elapsed-time footer.

        Elapsed minutes are measured from the task's creation time.
        """

        task = self._require(task_id)
        finished_at = utc_now()
        minutes = round((finished_at - task.created_at).total_seconds() / 60)
        description = (
            f"{summary}\n\n"
            f"COMPLETED: {finished_at.isoformat(timespec='seconds')}\n"
            f"Total time: {minutes} minute(s)"
        )
        updated = self.repository.update_task(
            task_id,
            {
                "status": TaskStatus.COMPLETED,
                "progress_percentage": 100,
                "description": description,
            },
        )
        self._log(
            f"Task #{task_id} completed in {minutes} minute(s)",
            metadata={"event": "completed", "task_id": task_id, "minutes": minutes},
        )
        return self._require_updated(updated, task_id)

    def record_cost(
        self,
        *,
        amount: float,
        description: str,
        category: str | None = DEFAULT_COST_CATEGORY,
    ) -> CostView:
        if amount < 0:
            raise ValueError("Cost amount must be >= 0.")
        return self.repository.create_cost(
            CostCreate(amount=amount, description=description, category=category),
        )

    def write_log(
        self,
        message: str,
        *,
        level: LogLevel = LogLevel.INFO,
        source: str | None = None,
    ) -> LogView:
        return self.repository.create_log(
            LogCreate(message=message, level=level, source=source or self.source),
        )

    def pending_tasks(self) -> list[TaskView]:
        return self.repository.list_pending_tasks()

    def status(self) -> StatusSummary:
        counts = self.repository.count_tasks_by_status()
        return StatusSummary(
            total_tasks=sum(counts.values()),
            tasks_by_status=counts,
            total_costs=self.repository.total_costs(),
        )

    def seed_sample_data(self) -> SeedResult:
        for task in SAMPLE_TASKS:
            self.repository.create_task(task)
        for cost in SAMPLE_COSTS:
            self.repository.create_cost(cost)
        for log in SAMPLE_LOGS:
            self.repository.create_log(log)
        return SeedResult(tasks=len(SAMPLE_TASKS), costs=len(SAMPLE_COSTS), logs=len(SAMPLE_LOGS))

    def _require(self, task_id: int) -> TaskView:
        task = self.repository.get_task(task_id)
        if task is None:
            raise RuntimeError(f"Task not found: #{task_id}")
        return task

    def _require_updated(self, task: TaskView | None, task_id: int) -> TaskView:
        if task is None:
            raise RuntimeError(f"Task not found: #{task_id}")
        return task

    def _log(self, message: str, *, metadata: dict[str, object] | None = None) -> None:
        self.repository.create_log(
            LogCreate(message=message, level=LogLevel.INFO, source=self.source, metadata=metadata),
        )
