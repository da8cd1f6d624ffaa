"""Store accessor for tasks, costs and logs."""

from __future__ import annotations

import json
from collections.abc import Mapping
from enum import Enum
from typing import Any

from sqlalchemy import case, func
from sqlalchemy import delete as sa_delete
from sqlalchemy import update as sa_update
from sqlmodel import Session, col, select

from mission_control.models import (
    TASK_MUTABLE_FIELDS,
    CostCreate,
    CostView,
    LogCreate,
    LogLevel,
    LogView,
    TaskCreate,
    TaskPriority,
    TaskStatus,
    TaskView,
)
from mission_control.storage.alembic_runner import upgrade_head
from mission_control.storage.common import (
    build_engine,
    to_db_datetime,
    to_utc_aware_datetime,
    utc_now,
)
from mission_control.storage.sqlmodel_models import Cost, LogEntry, Task

DEFAULT_LOGS_LIMIT = 100


class MissionControlRepository:
    """Persistence facade backed by SQLModel over any SQLAlchemy URL."""

    def __init__(self, database_url: str, *, sqlite_busy_timeout_ms: int = 5_000) -> None:
        self.database_url = database_url
        self.engine = build_engine(
            database_url=database_url,
            sqlite_busy_timeout_ms=sqlite_busy_timeout_ms,
        )

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def init_schema(self) -> None:
        """Run schema migrations up to head."""

        upgrade_head(self.database_url)

    # -- tasks --

    def list_tasks(
        self,
        *,
        status: TaskStatus | None = None,
        limit: int | None = None,
    ) -> list[TaskView]:
        """List tasks, newest first."""

        with Session(self.engine) as session:
            statement = select(Task).order_by(col(Task.created_at).desc(), col(Task.id).desc())
            if status is not None:
                statement = statement.where(Task.status == status.value)
            if limit is not None:
                statement = statement.limit(limit)
            rows = session.exec(statement).all()
        return [_to_task_view(row) for row in rows]

    def get_task(self, task_id: int) -> TaskView | None:
        with Session(self.engine) as session:
            row = session.exec(select(Task).where(Task.id == task_id)).one_or_none()
        return _to_task_view(row) if row is not None else None

    def create_task(self, payload: TaskCreate) -> TaskView:
        """Insert a task; status defaults to pending and priority to medium."""

        now = to_db_datetime(utc_now())
        with Session(self.engine) as session:
            row = Task(
                title=payload.title,
                description=payload.description,
                status=_enum_value(payload.status) or TaskStatus.PENDING.value,
                priority=(
                    _enum_value(payload.priority)
                    if payload.priority is not None
                    else TaskPriority.MEDIUM.value
                ),
                assigned_to=payload.assigned_to,
                progress_percentage=(
                    payload.progress_percentage if payload.progress_percentage is not None else 0
                ),
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_task_view(row)

    def update_task(self, task_id: int, changes: Mapping[str, Any]) -> TaskView | None:
        """Apply a partial update; unknown keys are ignored.

        Returns None when the task does not exist.
        """

        with Session(self.engine) as session:
            row = session.exec(select(Task).where(Task.id == task_id)).one_or_none()
            if row is None:
                return None
            for name, value in changes.items():
                if name not in TASK_MUTABLE_FIELDS:
                    continue
                setattr(row, name, _enum_value(value))
            row.updated_at = to_db_datetime(utc_now())
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_task_view(row)

    def delete_task(self, task_id: int) -> int:
        """Delete one task by id and return the number of removed rows."""

        with Session(self.engine) as session:
            result = session.exec(sa_delete(Task).where(col(Task.id) == task_id))
            session.commit()
            return int(result.rowcount or 0)

    def list_pending_tasks(self) -> list[TaskView]:
        """Pending tasks, highest priority first, then oldest first."""

        with Session(self.engine) as session:
            rows = session.exec(
                select(Task)
                .where(Task.status == TaskStatus.PENDING.value)
                .order_by(*_queue_order()),
            ).all()
        return [_to_task_view(row) for row in rows]

    def list_claimable_tasks(self) -> list[TaskView]:
        """Pending tasks with no assignee, in queue order."""

        with Session(self.engine) as session:
            rows = session.exec(
                select(Task)
                .where(
                    Task.status == TaskStatus.PENDING.value,
                    col(Task.assigned_to).is_(None),
                )
                .order_by(*_queue_order()),
            ).all()
        return [_to_task_view(row) for row in rows]

    def claim_task(
        self,
        *,
        task_id: int,
        assignee: str,
        source: str = "lifecycle-worker",
    ) -> TaskView | None:
        """Atomically claim one unassigned pending task.

        Returns None when the task was claimed, edited or removed by someone else.
        """

        now = to_db_datetime(utc_now())
        with Session(self.engine) as session:
            result = session.exec(
                sa_update(Task)
                .where(
                    col(Task.id) == task_id,
                    col(Task.status) == TaskStatus.PENDING.value,
                    col(Task.assigned_to).is_(None),
                )
                .values(
                    assigned_to=assignee,
                    status=TaskStatus.IN_PROGRESS.value,
                    updated_at=now,
                ),
            )
            if result.rowcount != 1:
                session.rollback()
                return None

            claimed = session.exec(select(Task).where(Task.id == task_id)).one()
            self._add_log(
                session=session,
                message=f"Task #{task_id} assigned to {assignee}",
                level=LogLevel.INFO,
                source=source,
                metadata={"event": "assigned", "task_id": task_id, "assignee": assignee},
            )
            session.commit()
            return _to_task_view(claimed)

    def record_task_progress(
        self,
        *,
        task_id: int,
        assignee: str,
        percentage: int,
        message: str,
    ) -> bool:
        """Store progress of an owned in-progress task and append a progress log."""

        now = to_db_datetime(utc_now())
        with Session(self.engine) as session:
            result = session.exec(
                sa_update(Task)
                .where(
                    col(Task.id) == task_id,
                    col(Task.status) == TaskStatus.IN_PROGRESS.value,
                    col(Task.assigned_to) == assignee,
                )
                .values(progress_percentage=percentage, updated_at=now),
            )
            if result.rowcount != 1:
                session.rollback()
                return False
            self._add_log(
                session=session,
                message=message,
                level=LogLevel.INFO,
                source=assignee,
                metadata={"event": "progress", "task_id": task_id, "percentage": percentage},
            )
            session.commit()
            return True

    def complete_assigned_task(self, *, task_id: int, assignee: str, summary: str) -> bool:
        """Mark an owned in-progress task completed and append one completion log."""

        now = to_db_datetime(utc_now())
        with Session(self.engine) as session:
            result = session.exec(
                sa_update(Task)
                .where(
                    col(Task.id) == task_id,
                    col(Task.status) == TaskStatus.IN_PROGRESS.value,
                    col(Task.assigned_to) == assignee,
                )
                .values(
                    status=TaskStatus.COMPLETED.value,
                    progress_percentage=100,
                    description=summary,
                    updated_at=now,
                ),
            )
            if result.rowcount != 1:
                session.rollback()
                return False
            self._add_log(
                session=session,
                message=f"{assignee} completed task #{task_id}",
                level=LogLevel.INFO,
                source=assignee,
                metadata={"event": "completed", "task_id": task_id},
            )
            session.commit()
            return True

    def count_tasks_by_status(self) -> dict[TaskStatus, int]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(col(Task.status), func.count(col(Task.id))).group_by(col(Task.status)),
            ).all()
        counts = {status: 0 for status in TaskStatus}
        for status, count in rows:
            counts[TaskStatus(status)] = int(count)
        return counts

    # -- costs --

    def list_costs(self) -> list[CostView]:
        """List costs, newest first."""

        with Session(self.engine) as session:
            rows = session.exec(
                select(Cost).order_by(col(Cost.created_at).desc(), col(Cost.id).desc()),
            ).all()
        return [_to_cost_view(row) for row in rows]

    def create_cost(self, payload: CostCreate) -> CostView:
        """Insert a cost; a negative amount violates the store check constraint."""

        with Session(self.engine) as session:
            row = Cost(
                amount=payload.amount,
                description=payload.description,
                category=payload.category,
                created_at=to_db_datetime(utc_now()),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_cost_view(row)

    def total_costs(self) -> float:
        with Session(self.engine) as session:
            total = session.exec(select(func.coalesce(func.sum(col(Cost.amount)), 0))).one()
        return float(total or 0)

    # -- logs --

    def list_logs(self, *, limit: int = DEFAULT_LOGS_LIMIT) -> list[LogView]:
        """List the latest logs, newest first."""

        with Session(self.engine) as session:
            rows = session.exec(
                select(LogEntry)
                .order_by(col(LogEntry.created_at).desc(), col(LogEntry.id).desc())
                .limit(limit),
            ).all()
        return [_to_log_view(row) for row in rows]

    def create_log(self, payload: LogCreate) -> LogView:
        """Append a log row; level defaults to info."""

        with Session(self.engine) as session:
            row = self._add_log(
                session=session,
                message=payload.message,
                level=payload.level or LogLevel.INFO,
                source=payload.source,
                metadata=payload.metadata,
            )
            session.commit()
            session.refresh(row)
            return _to_log_view(row)

    def _add_log(  # noqa: PLR0913
        self,
        *,
        session: Session,
        message: str,
        level: LogLevel | str,
        source: str | None,
        metadata: Mapping[str, Any] | None,
    ) -> LogEntry:
        row = LogEntry(
            message=message,
            level=_enum_value(level),
            source=source if source is not None else "system",
            metadata_json=(
                json.dumps(dict(metadata), ensure_ascii=False, sort_keys=True)
                if metadata is not None
                else None
            ),
            created_at=to_db_datetime(utc_now()),
        )
        session.add(row)
        return row


def _queue_order() -> tuple[Any, ...]:
    priority_rank = case(
        (col(Task.priority) == TaskPriority.HIGH.value, 0),
        (col(Task.priority) == TaskPriority.MEDIUM.value, 1),
        (col(Task.priority) == TaskPriority.LOW.value, 2),
        else_=3,
    )
    return (priority_rank.asc(), col(Task.created_at).asc(), col(Task.id).asc())


def _enum_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


def _to_task_view(row: Task) -> TaskView:
    return TaskView(
        id=row.id or 0,
        title=row.title,
        description=row.description,
        status=TaskStatus(row.status),
        priority=TaskPriority(row.priority) if row.priority is not None else None,
        assigned_to=row.assigned_to,
        progress_percentage=row.progress_percentage,
        created_at=to_utc_aware_datetime(row.created_at),
        updated_at=to_utc_aware_datetime(row.updated_at),
    )


def _to_cost_view(row: Cost) -> CostView:
    return CostView(
        id=row.id or 0,
        amount=float(row.amount),
        description=row.description,
        category=row.category,
        created_at=to_utc_aware_datetime(row.created_at),
    )


def _to_log_view(row: LogEntry) -> LogView:
    metadata = None
    if row.metadata_json:
        parsed = json.loads(row.metadata_json)
        if isinstance(parsed, dict):
            metadata = parsed
    return LogView(
        id=row.id or 0,
        message=row.message,
        level=LogLevel(row.level),
        source=row.source,
        metadata=metadata,
        created_at=to_utc_aware_datetime(row.created_at),
    )
