"""System metrics snapshot served by the dashboard API."""

from __future__ import annotations

import logging
import random
from dataclasses import asdict, dataclass
from datetime import datetime

import psutil

from mission_control.config import METRICS_MODES
from mission_control.storage.common import utc_now

logger = logging.getLogger(__name__)

_MB = 1024 * 1024
_GB = 1024 * 1024 * 1024


@dataclass(slots=True)
class CpuMetrics:
    usage: float
    count: int


@dataclass(slots=True)
class UsageMetrics:
    """Used/total amounts in one unit plus percentage 0-100."""

    used: float
    total: float
    percentage: float


@dataclass(slots=True)
class MetricsSnapshot:
    """Point-in-time host metrics: memory in MB, disk in GB."""

    cpu: CpuMetrics
    memory: UsageMetrics
    disk: UsageMetrics
    timestamp: datetime

    def to_dict(self) -> dict[str, object]:
        return {
            "cpu": asdict(self.cpu),
            "memory": asdict(self.memory),
            "disk": asdict(self.disk),
            "timestamp": self.timestamp.isoformat(),
        }


def fallback_snapshot(*, cpu_usage: float = 0.0) -> MetricsSnapshot:
    """Fixed figures used by mock mode and when host collection fails."""

    return MetricsSnapshot(
        cpu=CpuMetrics(usage=cpu_usage, count=4),
        memory=UsageMetrics(used=2048, total=8192, percentage=25),
        disk=UsageMetrics(used=50, total=256, percentage=20),
        timestamp=utc_now(),
    )


class MetricsCollector:
    """Collect a fresh snapshot on every call; nothing is cached."""

    def __init__(
        self,
        *,
        mode: str = "host",
        disk_path: str = "/",
        rng: random.Random | None = None,
    ) -> None:
        if mode not in METRICS_MODES:
            raise ValueError(f"Unknown metrics mode: {mode!r}")
        self.mode = mode
        self.disk_path = disk_path
        self._random = rng or random.Random()  # noqa: S311

    def collect(self) -> MetricsSnapshot:
        if self.mode == "mock":
            return fallback_snapshot(cpu_usage=float(self._random.randrange(100)))
        try:
            return self._collect_host()
        except (OSError, psutil.Error) as error:
            logger.warning("Host metrics unavailable, returning fallback values: %s", error)
            return fallback_snapshot()

    def _collect_host(self) -> MetricsSnapshot:
        count = psutil.cpu_count(logical=True) or 1
        load_1m, _, _ = psutil.getloadavg()
        memory = psutil.virtual_memory()
        disk = psutil.disk_usage(self.disk_path)
        return MetricsSnapshot(
            cpu=CpuMetrics(usage=min(100.0, round(load_1m / count * 100, 1)), count=count),
            memory=UsageMetrics(
                used=round(memory.used / _MB, 1),
                total=round(memory.total / _MB, 1),
                percentage=round(float(memory.percent), 1),
            ),
            disk=UsageMetrics(
                used=round(disk.used / _GB, 2),
                total=round(disk.total / _GB, 2),
                percentage=round(float(disk.percent), 1),
            ),
            timestamp=utc_now(),
        )
