"""Polling worker that claims pending tasks and drives them to completion."""

from __future__ import annotations

import logging
import signal
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError

from mission_control.lifecycle.executor import (
    ExecutionHandle,
    ExecutionOutcome,
    ExecutionProgress,
    ExecutionRequest,
    TaskExecutor,
)
from mission_control.models import LogCreate, LogLevel, TaskView
from mission_control.repository import MissionControlRepository
from mission_control.storage.common import utc_now

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LifecycleRunSummary:
    """Aggregate worker counters for CLI reporting."""

    polls: int = 0
    assigned: int = 0
    completed: int = 0
    canceled: int = 0
    lost_claims: int = 0
    poll_errors: int = 0
    task_errors: int = 0
    idle_polls: int = 0

    def merge(self, other: LifecycleRunSummary) -> None:
        self.polls += other.polls
        self.assigned += other.assigned
        self.completed += other.completed
        self.canceled += other.canceled
        self.lost_claims += other.lost_claims
        self.poll_errors += other.poll_errors
        self.task_errors += other.task_errors
        self.idle_polls += other.idle_polls


@dataclass(slots=True)
class ActiveAssignment:
    """In-flight task shown by status output."""

    task_id: int
    worker_label: str
    title: str
    started_at: datetime
    percentage: int = 0
    current_step: str | None = None


class TaskLifecycleWorker:
    """Consumes claimable tasks one at a time and executes them via the executor."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        repository: MissionControlRepository,
        executor: TaskExecutor,
        poll_interval_seconds: float = 10.0,
        assign_interval_seconds: float = 0.0,
        worker_prefix: str = "subagent",
        label_factory: Callable[[], str] | None = None,
        source_label: str = "lifecycle-worker",
    ) -> None:
        self.repository = repository
        self.executor = executor
        self.poll_interval_seconds = poll_interval_seconds
        self.assign_interval_seconds = assign_interval_seconds
        self.worker_prefix = worker_prefix
        self.source_label = source_label
        self._label_factory = label_factory or self._new_label
        self._active: dict[int, ActiveAssignment] = {}
        self._current_handle: ExecutionHandle | None = None
        self._stop_requested = False
        self._cancel_requested = False

    def run_once(self, *, max_tasks: int | None = None) -> LifecycleRunSummary:
        """Run one polling cycle: claim and execute every claimable task in queue order."""

        summary = LifecycleRunSummary(polls=1)
        if self._stop_requested:
            summary.idle_polls = 1
            return summary

        tasks = self.repository.list_claimable_tasks()
        if not tasks:
            logger.debug("No pending tasks")
            summary.idle_polls = 1
            return summary

        logger.info("Found %d pending task(s)", len(tasks))
        for index, task in enumerate(tasks):
            if self._stop_requested:
                break
            if max_tasks is not None and summary.assigned >= max_tasks:
                break
            if index > 0 and self.assign_interval_seconds > 0:
                self._sleep_with_stop(self.assign_interval_seconds)
                if self._stop_requested:
                    break
            try:
                self._process_task(task=task, summary=summary)
            except SQLAlchemyError:
                summary.task_errors += 1
                logger.exception("Store error while processing task #%s; ending this cycle", task.id)
                break
        return summary

    def run_loop(
        self,
        *,
        max_cycles: int | None = None,
        max_tasks: int | None = None,
    ) -> LifecycleRunSummary:
        """Poll every ``poll_interval_seconds`` until stopped.

        Args:
            max_cycles: Stop after this many polling cycles (None = unlimited).
            max_tasks: Stop once this many tasks were assigned (None = unlimited).
        """

        aggregate = LifecycleRunSummary()
        cycles = 0
        with self._signal_handlers():
            while True:
                if self._stop_requested:
                    return aggregate
                if max_cycles is not None and cycles >= max_cycles:
                    return aggregate
                if max_tasks is not None and aggregate.assigned >= max_tasks:
                    return aggregate

                cycles += 1
                remaining = None if max_tasks is None else max_tasks - aggregate.assigned
                try:
                    aggregate.merge(self.run_once(max_tasks=remaining))
                except SQLAlchemyError:
                    aggregate.polls += 1
                    aggregate.poll_errors += 1
                    logger.exception(
                        "Store error during polling cycle; next attempt in %.1fs",
                        self.poll_interval_seconds,
                    )

                if self._stop_requested:
                    return aggregate
                if max_cycles is not None and cycles >= max_cycles:
                    return aggregate
                if max_tasks is not None and aggregate.assigned >= max_tasks:
                    return aggregate
                self._sleep_with_stop(self.poll_interval_seconds)

    def request_stop(self, *, cancel_running: bool = False) -> None:
        """Stop polling; optionally cancel the execution in flight."""

        self._stop_requested = True
        if not cancel_running:
            return
        self._cancel_requested = True
        handle = self._current_handle
        if handle is not None:
            self.executor.cancel(handle)

    def active_assignments(self) -> list[ActiveAssignment]:
        return [replace(item) for item in self._active.values()]

    def _process_task(self, *, task: TaskView, summary: LifecycleRunSummary) -> None:
        label = self._label_factory()
        claimed = self.repository.claim_task(
            task_id=task.id,
            assignee=label,
            source=self.source_label,
        )
        if claimed is None:
            summary.lost_claims += 1
            logger.info("Task #%s was taken or changed before %s could claim it", task.id, label)
            return

        summary.assigned += 1
        logger.info("Assigned task #%s %r to %s", claimed.id, claimed.title, label)
        active = ActiveAssignment(
            task_id=claimed.id,
            worker_label=label,
            title=claimed.title,
            started_at=utc_now(),
        )
        self._active[claimed.id] = active
        started = time.monotonic()
        try:
            handle = self.executor.submit(
                ExecutionRequest(
                    task_id=claimed.id,
                    title=claimed.title,
                    description=claimed.description,
                    worker_label=label,
                ),
            )
            self._current_handle = handle
            if self._cancel_requested:
                self.executor.cancel(handle)

            def _on_progress(progress: ExecutionProgress) -> None:
                self._report_progress(handle=handle, active=active, progress=progress)

            result = self.executor.wait(handle, on_progress=_on_progress)
            elapsed = time.monotonic() - started

            if result.outcome == ExecutionOutcome.CANCELED:
                summary.canceled += 1
                logger.warning(
                    "%s canceled on task #%s after %d step(s)",
                    label,
                    claimed.id,
                    len(result.steps_completed),
                )
                self.repository.create_log(
                    LogCreate(
                        message=(
                            f"{label} canceled on task #{claimed.id}; "
                            "task left in_progress"
                        ),
                        level=LogLevel.WARNING,
                        source=label,
                        metadata={
                            "event": "canceled",
                            "task_id": claimed.id,
                            "steps_completed": len(result.steps_completed),
                        },
                    ),
                )
                return

            completed = self.repository.complete_assigned_task(
                task_id=claimed.id,
                assignee=label,
                summary=build_completion_summary(
                    worker_label=label,
                    steps=result.steps_completed,
                    elapsed_seconds=elapsed,
                ),
            )
            if completed:
                summary.completed += 1
                logger.info("%s completed task #%s in %s", label, claimed.id, format_elapsed(elapsed))
            else:
                logger.warning(
                    "Task #%s changed while %s was working; completion skipped",
                    claimed.id,
                    label,
                )
        finally:
            self._current_handle = None
            self._active.pop(claimed.id, None)

    def _report_progress(
        self,
        *,
        handle: ExecutionHandle,
        active: ActiveAssignment,
        progress: ExecutionProgress,
    ) -> None:
        percentage = progress.percentage
        active.percentage = percentage
        active.current_step = progress.step
        logger.info("%s: %s (%d%%)", active.worker_label, progress.step, percentage)
        recorded = self.repository.record_task_progress(
            task_id=active.task_id,
            assignee=active.worker_label,
            percentage=percentage,
            message=f"{active.worker_label}: {progress.step} ({percentage}%)",
        )
        if not recorded:
            logger.warning(
                "Task #%s is no longer owned by %s; canceling execution",
                active.task_id,
                active.worker_label,
            )
            self.executor.cancel(handle)

    def _new_label(self) -> str:
        return f"{self.worker_prefix}-{uuid4().hex[:12]}"

    def _sleep_with_stop(self, seconds: float) -> None:
        deadline = time.monotonic() + seconds
        while not self._stop_requested and time.monotonic() < deadline:
            time.sleep(min(0.1, max(0.0, deadline - time.monotonic())))

    @contextmanager
    def _signal_handlers(self) -> Iterator[None]:
        if not hasattr(signal, "SIGINT"):
            yield
            return

        original_sigint = signal.getsignal(signal.SIGINT)
        original_sigterm = signal.getsignal(signal.SIGTERM)

        def _handler(signum: int, _: object | None) -> None:
            try:
                name = signal.Signals(signum).name
            except ValueError:
                name = str(signum)
            escalate = self._stop_requested
            logger.warning(
                "Received %s; %s",
                name,
                "canceling current task" if escalate else "finishing current task, then stopping",
            )
            for active in self.active_assignments():
                logger.warning(
                    "In flight: task #%s %r on %s at %d%% (%s)",
                    active.task_id,
                    active.title,
                    active.worker_label,
                    active.percentage,
                    active.current_step or "starting",
                )
            self.request_stop(cancel_running=escalate)

        installed = False
        try:
            signal.signal(signal.SIGINT, _handler)
            signal.signal(signal.SIGTERM, _handler)
            installed = True
        except ValueError:
            # Signal handlers can only be installed in main thread.
            logger.debug("Signal handlers not installed outside the main thread")
        try:
            yield
        finally:
            if installed:
                signal.signal(signal.SIGINT, original_sigint)
                signal.signal(signal.SIGTERM, original_sigterm)


def build_completion_summary(
    *,
    worker_label: str,
    steps: list[str],
    elapsed_seconds: float,
) -> str:
    """Text stored as the task description once the work is done."""

    lines = [f"Task completed by {worker_label}", "", "Work performed:"]
    lines.extend(f"- {step}" for step in steps)
    lines.extend(["", f"Elapsed: {format_elapsed(elapsed_seconds)}", "Status: completed"])
    return "\n".join(lines)


def format_elapsed(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, rest = divmod(int(round(seconds)), 60)
    return f"{minutes}m {rest:02d}s"
