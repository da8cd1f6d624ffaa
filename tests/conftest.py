"""Shared test fixtures."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from mission_control.config import sqlite_url
from mission_control.repository import MissionControlRepository


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop MISSION_CONTROL_* variables inherited from the developer shell."""

    for name in list(os.environ):
        if name.startswith("MISSION_CONTROL_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def database_url(tmp_path: Path) -> str:
    return sqlite_url(tmp_path / "mission_control.db")


@pytest.fixture()
def repository(database_url: str) -> Iterator[MissionControlRepository]:
    repo = MissionControlRepository(database_url)
    repo.init_schema()
    try:
        yield repo
    finally:
        repo.close()


@pytest.fixture(autouse=True)
def _drop_console_handlers() -> Iterator[None]:
    """Remove handlers installed by CLI runs; they point at CliRunner's closed streams."""

    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_mission_control", False):
            root.removeHandler(handler)
