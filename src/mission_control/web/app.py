"""FastAPI application serving the dashboard and its JSON API."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from mission_control import __version__
from mission_control.config import Settings, StoreNotConfiguredError
from mission_control.metrics import MetricsCollector
from mission_control.repository import MissionControlRepository
from mission_control.web.schemas import (
    CostCreatePayload,
    LogCreatePayload,
    TaskCreatePayload,
    TaskUpdatePayload,
)

logger = logging.getLogger(__name__)

_HERE = Path(__file__).resolve().parent
_STATIC_DIR = _HERE / "static"


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the app; without a configured store every data route answers 500."""

    settings = settings or Settings.from_env()
    repository = (
        MissionControlRepository(
            settings.store.database_url,
            sqlite_busy_timeout_ms=settings.store.sqlite_busy_timeout_ms,
        )
        if settings.store.database_url
        else None
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if repository is None:
            logger.warning("Database not configured; data endpoints will answer 500")
        else:
            try:
                repository.init_schema()
            except SQLAlchemyError:
                logger.exception("Schema migration failed")
        yield
        if repository is not None:
            repository.close()

    app = FastAPI(title="Mission Control", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.repository = repository
    app.state.metrics = MetricsCollector(
        mode=settings.metrics.mode,
        disk_path=settings.metrics.disk_path,
    )

    @app.exception_handler(StoreNotConfiguredError)
    async def store_not_configured(_: Request, __: StoreNotConfiguredError) -> JSONResponse:
        return JSONResponse({"error": "Database not configured"}, status_code=500)

    @app.exception_handler(RequestValidationError)
    async def invalid_payload(_: Request, error: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            {"error": f"Invalid payload: {_describe_validation(error)}"},
            status_code=400,
        )

    app.mount("/static", StaticFiles(directory=str(_STATIC_DIR)), name="static")

    @app.get("/", include_in_schema=False)
    def index() -> FileResponse:
        return FileResponse(_STATIC_DIR / "index.html")

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    # -- tasks --

    @app.get("/api/tasks")
    def list_tasks(request: Request):
        repo = _repository(request)
        try:
            return repo.list_tasks()
        except SQLAlchemyError:
            return _store_error("Error fetching tasks")

    @app.post("/api/tasks")
    def create_task(request: Request, payload: TaskCreatePayload):
        repo = _repository(request)
        try:
            return repo.create_task(payload.to_domain())
        except SQLAlchemyError:
            return _store_error("Error creating task")

    @app.patch("/api/tasks/{task_id}")
    def update_task(request: Request, task_id: int, payload: TaskUpdatePayload):
        repo = _repository(request)
        try:
            task = repo.update_task(task_id, payload.changes())
        except SQLAlchemyError:
            return _store_error("Error updating task")
        if task is None:
            return JSONResponse({"error": f"Task not found: {task_id}"}, status_code=404)
        return task

    @app.delete("/api/tasks/{task_id}")
    def delete_task(request: Request, task_id: int):
        repo = _repository(request)
        try:
            deleted = repo.delete_task(task_id)
        except SQLAlchemyError:
            return _store_error("Error deleting task")
        return {"success": True, "deleted": deleted}

    # -- costs --

    @app.get("/api/costs")
    def list_costs(request: Request):
        repo = _repository(request)
        try:
            return repo.list_costs()
        except SQLAlchemyError:
            return _store_error("Error fetching costs")

    @app.post("/api/costs")
    def create_cost(request: Request, payload: CostCreatePayload):
        repo = _repository(request)
        try:
            return repo.create_cost(payload.to_domain())
        except SQLAlchemyError:
            return _store_error("Error creating cost")

    # -- logs --

    @app.get("/api/logs")
    def list_logs(request: Request, limit: int | None = Query(default=None, ge=1, le=1000)):
        repo = _repository(request)
        try:
            return repo.list_logs(limit=limit or settings.web.logs_limit)
        except SQLAlchemyError:
            return _store_error("Error fetching logs")

    @app.post("/api/logs")
    def create_log(request: Request, payload: LogCreatePayload):
        repo = _repository(request)
        try:
            return repo.create_log(payload.to_domain())
        except SQLAlchemyError:
            return _store_error("Error creating log")

    # -- metrics --

    @app.get("/api/metrics")
    def metrics(request: Request):
        collector: MetricsCollector = request.app.state.metrics
        return collector.collect().to_dict()

    return app


def _repository(request: Request) -> MissionControlRepository:
    repository: MissionControlRepository | None = request.app.state.repository
    if repository is None:
        raise StoreNotConfiguredError("Database not configured")
    return repository


def _store_error(message: str) -> JSONResponse:
    logger.exception(message)
    return JSONResponse({"error": message}, status_code=500)


def _describe_validation(error: RequestValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()) if part != "body")
        parts.append(f"{location or 'body'}: {item.get('msg', 'invalid value')}")
    return "; ".join(parts)
