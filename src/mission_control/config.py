"""Runtime configuration for the dashboard, the CLI and the lifecycle worker."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

METRICS_MODES = ("host", "mock")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class StoreNotConfiguredError(ValueError):
    """Raised when no database URL or path is configured."""


@dataclass(slots=True)
class StoreSettings:
    """Relational store connection settings."""

    database_url: str | None = None
    sqlite_busy_timeout_ms: int = 5_000


@dataclass(slots=True)
class LifecycleSettings:
    """Task-lifecycle polling loop settings."""

    poll_interval_seconds: float = 10.0
    assign_interval_seconds: float = 1.0
    step_delay_seconds: float = 2.0
    step_jitter_seconds: float = 0.0
    worker_prefix: str = "subagent"


@dataclass(slots=True)
class MetricsSettings:
    """System metrics endpoint settings."""

    mode: str = "host"
    disk_path: str = "/"


@dataclass(slots=True)
class WebSettings:
    """HTTP server settings."""

    host: str = "127.0.0.1"
    port: int = 8000
    logs_limit: int = 100


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    store: StoreSettings = field(default_factory=StoreSettings)
    lifecycle: LifecycleSettings = field(default_factory=LifecycleSettings)
    metrics: MetricsSettings = field(default_factory=MetricsSettings)
    web: WebSettings = field(default_factory=WebSettings)
    log_level: str = "INFO"

    @classmethod
    def from_env(
        cls,
        *,
        database_url: str | None = None,
        db_path: Path | None = None,
    ) -> Settings:
        """Load settings from environment; explicit arguments win over variables."""

        settings = cls(
            store=StoreSettings(
                database_url=_resolve_database_url(database_url=database_url, db_path=db_path),
                sqlite_busy_timeout_ms=_env_int("MISSION_CONTROL_SQLITE_BUSY_TIMEOUT_MS", 5000),
            ),
            lifecycle=LifecycleSettings(
                poll_interval_seconds=_env_float("MISSION_CONTROL_POLL_INTERVAL_SECONDS", 10.0),
                assign_interval_seconds=_env_float("MISSION_CONTROL_ASSIGN_INTERVAL_SECONDS", 1.0),
                step_delay_seconds=_env_float("MISSION_CONTROL_STEP_DELAY_SECONDS", 2.0),
                step_jitter_seconds=_env_float("MISSION_CONTROL_STEP_JITTER_SECONDS", 0.0),
                worker_prefix=os.getenv("MISSION_CONTROL_WORKER_PREFIX", "subagent").strip(),
            ),
            metrics=MetricsSettings(
                mode=os.getenv("MISSION_CONTROL_METRICS_MODE", "host").strip().lower(),
                disk_path=os.getenv("MISSION_CONTROL_METRICS_DISK_PATH", "/"),
            ),
            web=WebSettings(
                host=os.getenv("MISSION_CONTROL_HOST", "127.0.0.1"),
                port=_env_int("MISSION_CONTROL_PORT", 8000),
                logs_limit=_env_int("MISSION_CONTROL_LOGS_LIMIT", 100),
            ),
            log_level=os.getenv("MISSION_CONTROL_LOG_LEVEL", "INFO").strip().upper(),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        """Raise ValueError for out-of-range values."""

        if self.store.sqlite_busy_timeout_ms <= 0:
            raise ValueError("MISSION_CONTROL_SQLITE_BUSY_TIMEOUT_MS must be > 0.")
        if self.lifecycle.poll_interval_seconds < 0:
            raise ValueError("MISSION_CONTROL_POLL_INTERVAL_SECONDS must be >= 0.")
        if self.lifecycle.assign_interval_seconds < 0:
            raise ValueError("MISSION_CONTROL_ASSIGN_INTERVAL_SECONDS must be >= 0.")
        if self.lifecycle.step_delay_seconds < 0:
            raise ValueError("MISSION_CONTROL_STEP_DELAY_SECONDS must be >= 0.")
        if self.lifecycle.step_jitter_seconds < 0:
            raise ValueError("MISSION_CONTROL_STEP_JITTER_SECONDS must be >= 0.")
        if not self.lifecycle.worker_prefix:
            raise ValueError("MISSION_CONTROL_WORKER_PREFIX must not be empty.")
        if self.metrics.mode not in METRICS_MODES:
            raise ValueError(
                f"Invalid MISSION_CONTROL_METRICS_MODE: {self.metrics.mode!r}. "
                f"Expected one of: {', '.join(METRICS_MODES)}.",
            )
        if not 0 < self.web.port < 65_536:
            raise ValueError("MISSION_CONTROL_PORT must be between 1 and 65535.")
        if self.web.logs_limit <= 0:
            raise ValueError("MISSION_CONTROL_LOGS_LIMIT must be a positive integer.")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"Invalid MISSION_CONTROL_LOG_LEVEL: {self.log_level!r}. "
                f"Expected one of: {', '.join(LOG_LEVELS)}.",
            )

    def require_database_url(self) -> str:
        """Return the configured database URL or raise StoreNotConfiguredError."""

        if not self.store.database_url:
            raise StoreNotConfiguredError(
                "Database not configured. "
                "Set MISSION_CONTROL_DATABASE_URL or MISSION_CONTROL_DB_PATH, "
                "or pass --db-url/--db-path.",
            )
        return self.store.database_url


def sqlite_url(db_path: Path) -> str:
    """Build a SQLAlchemy URL for a SQLite file."""

    return f"sqlite:///{db_path}"


def _resolve_database_url(*, database_url: str | None, db_path: Path | None) -> str | None:
    if database_url:
        return database_url.strip()
    if db_path is not None:
        return sqlite_url(db_path)
    env_url = os.getenv("MISSION_CONTROL_DATABASE_URL", "").strip()
    if env_url:
        return env_url
    env_path = os.getenv("MISSION_CONTROL_DB_PATH", "").strip()
    if env_path:
        return sqlite_url(Path(env_path))
    return None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as error:
        raise ValueError(f"{name} must be an integer, got {raw!r}.") from error


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as error:
        raise ValueError(f"{name} must be a number, got {raw!r}.") from error
