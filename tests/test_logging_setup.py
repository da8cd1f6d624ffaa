from __future__ import annotations

import logging

import allure

from mission_control.logging_setup import _ConsoleNoiseFilter, setup_logging

pytestmark = [
    allure.epic("Operations"),
    allure.feature("Logging"),
]


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "message", None, None)


def test_setup_logging_replaces_its_own_handler() -> None:
    root = logging.getLogger()
    try:
        setup_logging(level="DEBUG")
        setup_logging(level="WARNING")

        marked = [handler for handler in root.handlers if getattr(handler, "_mission_control", False)]
        assert len(marked) == 1
        assert marked[0].level == logging.WARNING
    finally:
        for handler in list(root.handlers):
            if getattr(handler, "_mission_control", False):
                root.removeHandler(handler)


def test_console_filter_keeps_project_records_and_library_warnings() -> None:
    noise = _ConsoleNoiseFilter()

    assert noise.filter(_record("mission_control.lifecycle.worker", logging.DEBUG))
    assert noise.filter(_record("uvicorn.access", logging.INFO))
    assert not noise.filter(_record("alembic.runtime.migration", logging.INFO))
    assert noise.filter(_record("sqlalchemy.engine", logging.WARNING))
