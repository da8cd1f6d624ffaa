"""Executor that walks a fixed list of steps with delays instead of doing real work."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass

from mission_control.lifecycle.executor.base import (
    ExecutionHandle,
    ExecutionOutcome,
    ExecutionProgress,
    ExecutionRequest,
    ExecutionResult,
    ProgressCallback,
)
from mission_control.storage.common import utc_now

logger = logging.getLogger(__name__)

DEFAULT_STEP_LABELS = (
    "Analyzing requirements",
    "Preparing environment",
    "Running main task",
    "Verifying results",
    "Finalizing",
)


@dataclass(frozen=True, slots=True)
class SimulatedStep:
    label: str
    delay_seconds: float


class SimulatedExecutor:
    """Runs each step after its delay; cancellation interrupts the current delay."""

    def __init__(
        self,
        *,
        steps: tuple[SimulatedStep, ...],
        jitter_seconds: float = 0.0,
        rng: random.Random | None = None,
    ) -> None:
        if not steps:
            raise ValueError("SimulatedExecutor needs at least one step.")
        self.steps = steps
        self.jitter_seconds = max(0.0, jitter_seconds)
        self._random = rng or random.Random()  # noqa: S311

    @classmethod
    def with_default_steps(
        cls,
        *,
        delay_seconds: float,
        jitter_seconds: float = 0.0,
    ) -> SimulatedExecutor:
        return cls(
            steps=tuple(SimulatedStep(label, delay_seconds) for label in DEFAULT_STEP_LABELS),
            jitter_seconds=jitter_seconds,
        )

    def submit(self, request: ExecutionRequest) -> ExecutionHandle:
        logger.debug("Submitted task #%s to %s", request.task_id, request.worker_label)
        return ExecutionHandle(request=request, submitted_at=utc_now())

    def wait(
        self,
        handle: ExecutionHandle,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> ExecutionResult:
        started = time.monotonic()
        completed: list[str] = []
        total = len(self.steps)
        for index, step in enumerate(self.steps, start=1):
            if handle.cancel_event.wait(self._delay_for(step)):
                return ExecutionResult(
                    outcome=ExecutionOutcome.CANCELED,
                    steps_completed=completed,
                    elapsed_seconds=time.monotonic() - started,
                )
            completed.append(step.label)
            if on_progress is not None:
                on_progress(ExecutionProgress(step=step.label, step_index=index, total_steps=total))
        return ExecutionResult(
            outcome=ExecutionOutcome.COMPLETED,
            steps_completed=completed,
            elapsed_seconds=time.monotonic() - started,
        )

    def cancel(self, handle: ExecutionHandle) -> None:
        handle.cancel_event.set()

    def _delay_for(self, step: SimulatedStep) -> float:
        if self.jitter_seconds <= 0:
            return step.delay_seconds
        return step.delay_seconds + self._random.uniform(0.0, self.jitter_seconds)
