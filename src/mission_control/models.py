"""Domain models for tasks, costs, logs and aggregate status."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class TaskStatus(str, Enum):
    """Task lifecycle states."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    """Task priorities, highest first when polling."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class LogLevel(str, Enum):
    """Severity of a stored log row."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


TASK_MUTABLE_FIELDS = (
    "title",
    "description",
    "status",
    "priority",
    "assigned_to",
    "progress_percentage",
)


@dataclass(slots=True)
class TaskCreate:
    """Input payload for a new task.

    Enumerated fields accept raw strings; the store's check constraints decide.
    """

    title: str
    description: str | None = None
    status: TaskStatus | str | None = None
    priority: TaskPriority | str | None = None
    assigned_to: str | None = None
    progress_percentage: int | None = None


@dataclass(slots=True)
class TaskView:
    """Stored task as returned to HTTP, CLI and worker code."""

    id: int
    title: str
    description: str | None
    status: TaskStatus
    priority: TaskPriority | None
    assigned_to: str | None
    progress_percentage: int | None
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class CostCreate:
    """Input payload for a new cost entry."""

    amount: float
    description: str | None = None
    category: str | None = None


@dataclass(slots=True)
class CostView:
    """Stored cost entry."""

    id: int
    amount: float
    description: str | None
    category: str | None
    created_at: datetime


@dataclass(slots=True)
class LogCreate:
    """Input payload for a new log row."""

    message: str
    level: LogLevel | str | None = None
    source: str | None = None
    metadata: dict[str, Any] | None = None


@dataclass(slots=True)
class LogView:
    """Stored log row."""

    id: int
    message: str
    level: LogLevel
    source: str | None
    metadata: dict[str, Any] | None
    created_at: datetime


@dataclass(slots=True)
class StatusSummary:
    """Aggregate counters for the status command and dashboard."""

    total_tasks: int
    tasks_by_status: dict[TaskStatus, int] = field(default_factory=dict)
    total_costs: float = 0.0

    def count(self, status: TaskStatus) -> int:
        return self.tasks_by_status.get(status, 0)
