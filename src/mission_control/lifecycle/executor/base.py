"""Execution interface used by the lifecycle worker."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol


class ExecutionOutcome(str, Enum):
    """Terminal result of one execution."""

    COMPLETED = "completed"
    CANCELED = "canceled"


@dataclass(slots=True)
class ExecutionRequest:
    """Inputs required to execute one claimed task."""

    task_id: int
    title: str
    description: str | None
    worker_label: str


@dataclass(slots=True)
class ExecutionProgress:
    """One finished step reported while an execution is running."""

    step: str
    step_index: int
    total_steps: int

    @property
    def percentage(self) -> int:
        if self.total_steps <= 0:
            return 100
        return round(self.step_index / self.total_steps * 100)


@dataclass(slots=True)
class ExecutionHandle:
    """Submitted execution; passed back to wait/cancel."""

    request: ExecutionRequest
    submitted_at: datetime
    cancel_event: threading.Event = field(default_factory=threading.Event)

    @property
    def cancel_requested(self) -> bool:
        return self.cancel_event.is_set()


@dataclass(slots=True)
class ExecutionResult:
    """Execution outcome returned by wait."""

    outcome: ExecutionOutcome
    steps_completed: list[str]
    elapsed_seconds: float


ProgressCallback = Callable[[ExecutionProgress], None]


class TaskExecutor(Protocol):
    """Protocol implemented by task executors."""

    def submit(self, request: ExecutionRequest) -> ExecutionHandle:
        """Accept a task for execution and return its handle."""

    def wait(
        self,
        handle: ExecutionHandle,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> ExecutionResult:
        """Block until the execution finishes or is canceled."""

    def cancel(self, handle: ExecutionHandle) -> None:
        """Ask a running execution to stop as soon as possible."""
