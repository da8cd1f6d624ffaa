"""Request bodies accepted by the JSON API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from mission_control.models import CostCreate, LogCreate, LogLevel, TaskCreate, TaskPriority, TaskStatus


class TaskCreatePayload(BaseModel):
    title: str
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    assigned_to: str | None = None
    progress_percentage: int | None = Field(default=None, ge=0, le=100)

    def to_domain(self) -> TaskCreate:
        return TaskCreate(
            title=self.title,
            description=self.description,
            status=self.status,
            priority=self.priority,
            assigned_to=self.assigned_to,
            progress_percentage=self.progress_percentage,
        )


class TaskUpdatePayload(BaseModel):
    """Partial update; only fields present in the request body are written."""

    title: str | None = None
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    assigned_to: str | None = None
    progress_percentage: int | None = Field(default=None, ge=0, le=100)

    @field_validator("title", "status")
    @classmethod
    def _not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("must not be null")
        return value

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class CostCreatePayload(BaseModel):
    amount: float
    description: str
    category: str | None = None

    def to_domain(self) -> CostCreate:
        return CostCreate(amount=self.amount, description=self.description, category=self.category)


class LogCreatePayload(BaseModel):
    message: str
    level: LogLevel = LogLevel.INFO
    source: str | None = None
    metadata: dict[str, Any] | None = None

    def to_domain(self) -> LogCreate:
        return LogCreate(
            message=self.message,
            level=self.level,
            source=self.source,
            metadata=self.metadata,
        )
