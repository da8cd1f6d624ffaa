from __future__ import annotations

import random

import allure
import pytest

from mission_control.lifecycle.executor import (
    ExecutionOutcome,
    ExecutionProgress,
    ExecutionRequest,
    SimulatedExecutor,
    SimulatedStep,
)
from mission_control.lifecycle.executor.simulated import DEFAULT_STEP_LABELS

pytestmark = [
    allure.epic("Task Lifecycle"),
    allure.feature("Simulated Executor"),
]


def _request() -> ExecutionRequest:
    return ExecutionRequest(task_id=1, title="t", description=None, worker_label="subagent-x")


def test_wait_reports_each_step_in_order() -> None:
    executor = SimulatedExecutor.with_default_steps(delay_seconds=0)
    seen: list[ExecutionProgress] = []

    result = executor.wait(executor.submit(_request()), on_progress=seen.append)

    assert result.outcome == ExecutionOutcome.COMPLETED
    assert result.steps_completed == list(DEFAULT_STEP_LABELS)
    assert [progress.step for progress in seen] == list(DEFAULT_STEP_LABELS)
    assert [progress.percentage for progress in seen] == [20, 40, 60, 80, 100]


def test_cancel_before_wait_stops_without_running_steps() -> None:
    executor = SimulatedExecutor(steps=(SimulatedStep("only", 0),))
    handle = executor.submit(_request())

    executor.cancel(handle)
    result = executor.wait(handle)

    assert handle.cancel_requested
    assert result.outcome == ExecutionOutcome.CANCELED
    assert result.steps_completed == []


def test_cancel_from_progress_callback_interrupts_remaining_steps() -> None:
    executor = SimulatedExecutor(
        steps=(SimulatedStep("one", 0), SimulatedStep("two", 0), SimulatedStep("three", 0)),
    )
    handle = executor.submit(_request())

    result = executor.wait(handle, on_progress=lambda _: executor.cancel(handle))

    assert result.outcome == ExecutionOutcome.CANCELED
    assert result.steps_completed == ["one"]


def test_jitter_is_added_to_step_delay() -> None:
    executor = SimulatedExecutor(
        steps=(SimulatedStep("one", 1.0),),
        jitter_seconds=0.5,
        rng=random.Random(7),
    )

    delay = executor._delay_for(executor.steps[0])

    assert 1.0 <= delay <= 1.5


def test_executor_requires_steps() -> None:
    with pytest.raises(ValueError, match="at least one step"):
        SimulatedExecutor(steps=())


def test_progress_percentage_rounds_to_whole_numbers() -> None:
    assert ExecutionProgress(step="a", step_index=1, total_steps=3).percentage == 33
    assert ExecutionProgress(step="b", step_index=2, total_steps=3).percentage == 67
    assert ExecutionProgress(step="c", step_index=0, total_steps=0).percentage == 100
