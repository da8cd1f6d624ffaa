"""SQLModel ORM tables for the mission control store."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Index, Numeric, Text
from sqlmodel import Field, SQLModel


class Task(SQLModel, table=True):
    __tablename__ = "tasks"  # type: ignore[bad-override]
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'in_progress', 'completed')",
            name="ck_tasks_status",
        ),
        CheckConstraint(
            "priority IS NULL OR priority IN ('low', 'medium', 'high')",
            name="ck_tasks_priority",
        ),
        CheckConstraint(
            "progress_percentage IS NULL OR progress_percentage BETWEEN 0 AND 100",
            name="ck_tasks_progress_percentage",
        ),
        Index("idx_tasks_claimable", "status", "assigned_to", "priority", "created_at"),
    )

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(sa_column=Column(Text, nullable=False))
    description: str | None = Field(default=None, sa_column=Column(Text))
    status: str = Field(default="pending", index=True)
    priority: str | None = Field(default="medium")
    assigned_to: str | None = Field(default=None, index=True)
    progress_percentage: int | None = Field(default=0)
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class Cost(SQLModel, table=True):
    __tablename__ = "costs"  # type: ignore[bad-override]
    __table_args__ = (CheckConstraint("amount >= 0", name="ck_costs_amount_non_negative"),)

    id: int | None = Field(default=None, primary_key=True)
    amount: float = Field(sa_column=Column(Numeric(10, 2, asdecimal=False), nullable=False))
    description: str | None = Field(default=None, sa_column=Column(Text))
    category: str | None = Field(default=None, index=True)
    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )


class LogEntry(SQLModel, table=True):
    __tablename__ = "logs"  # type: ignore[bad-override]
    __table_args__ = (
        CheckConstraint("level IN ('info', 'warning', 'error')", name="ck_logs_level"),
    )

    id: int | None = Field(default=None, primary_key=True)
    message: str = Field(sa_column=Column(Text, nullable=False))
    level: str = Field(default="info", index=True)
    source: str | None = Field(default="system", index=True)
    metadata_json: str | None = Field(default=None, sa_column=Column("metadata", Text))
    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )
