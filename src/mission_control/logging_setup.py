"""Process-wide logging configuration for CLI commands and the web server."""

from __future__ import annotations

import logging
import sys


class _ConsoleNoiseFilter(logging.Filter):
    """Keep mission_control records; only warnings and above from libraries."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith("mission_control"):
            return True
        if record.name.startswith("uvicorn"):
            return record.levelno >= logging.INFO
        return record.levelno >= logging.WARNING


def setup_logging(*, level: str = "INFO") -> None:
    """Configure the root logger with one console handler.

    Safe to call more than once: previous handlers installed here are replaced.
    """

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        if getattr(handler, "_mission_control", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ),
    )
    handler.addFilter(_ConsoleNoiseFilter())
    handler._mission_control = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    logging.captureWarnings(True)
