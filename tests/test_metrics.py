from __future__ import annotations

import random
from types import SimpleNamespace

import allure
import psutil
import pytest

from mission_control.metrics import MetricsCollector

pytestmark = [
    allure.epic("Dashboard"),
    allure.feature("System Metrics"),
]

_GB = 1024**3


def test_mock_mode_returns_fixed_memory_and_disk() -> None:
    snapshot = MetricsCollector(mode="mock", rng=random.Random(3)).collect().to_dict()

    assert 0 <= snapshot["cpu"]["usage"] < 100
    assert snapshot["cpu"]["count"] == 4
    assert snapshot["memory"] == {"used": 2048, "total": 8192, "percentage": 25}
    assert snapshot["disk"] == {"used": 50, "total": 256, "percentage": 20}
    assert isinstance(snapshot["timestamp"], str)


def test_host_mode_normalizes_load_and_converts_units(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(psutil, "cpu_count", lambda logical=True: 4)
    monkeypatch.setattr(psutil, "getloadavg", lambda: (2.0, 1.0, 0.5))
    monkeypatch.setattr(
        psutil,
        "virtual_memory",
        lambda: SimpleNamespace(used=1024 * 1024 * 1024, total=4 * 1024 * 1024 * 1024, percent=25.0),
    )
    monkeypatch.setattr(
        psutil,
        "disk_usage",
        lambda path: SimpleNamespace(used=50 * _GB, total=200 * _GB, percent=25.0),
    )

    snapshot = MetricsCollector(mode="host", disk_path="/data").collect()

    assert snapshot.cpu.usage == 50.0
    assert snapshot.cpu.count == 4
    assert snapshot.memory.used == 1024.0
    assert snapshot.memory.total == 4096.0
    assert snapshot.disk.used == 50.0
    assert snapshot.disk.total == 200.0
    assert snapshot.disk.percentage == 25.0


def test_host_mode_caps_cpu_usage_at_100(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(psutil, "cpu_count", lambda logical=True: 2)
    monkeypatch.setattr(psutil, "getloadavg", lambda: (9.0, 0.0, 0.0))

    snapshot = MetricsCollector(mode="host").collect()

    assert snapshot.cpu.usage == 100.0


def test_host_mode_falls_back_when_collection_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    def _broken(path: str) -> None:
        raise FileNotFoundError(path)

    monkeypatch.setattr(psutil, "disk_usage", _broken)

    snapshot = MetricsCollector(mode="host", disk_path="/missing").collect().to_dict()

    assert snapshot["cpu"] == {"usage": 0.0, "count": 4}
    assert snapshot["memory"] == {"used": 2048, "total": 8192, "percentage": 25}


def test_unknown_mode_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown metrics mode"):
        MetricsCollector(mode="cloud")
