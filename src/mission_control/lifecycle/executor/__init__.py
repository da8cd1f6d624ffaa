"""Task executor implementations."""

from mission_control.lifecycle.executor.base import (
    ExecutionHandle,
    ExecutionOutcome,
    ExecutionProgress,
    ExecutionRequest,
    ExecutionResult,
    TaskExecutor,
)
from mission_control.lifecycle.executor.simulated import SimulatedExecutor, SimulatedStep

__all__ = [
    "ExecutionHandle",
    "ExecutionOutcome",
    "ExecutionProgress",
    "ExecutionRequest",
    "ExecutionResult",
    "SimulatedExecutor",
    "SimulatedStep",
    "TaskExecutor",
]
