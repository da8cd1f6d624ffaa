"""Index the lifecycle worker's claimable-task poll."""

from __future__ import annotations

from alembic import op

revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_index(
        "idx_tasks_claimable",
        "tasks",
        ["status", "assigned_to", "priority", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("idx_tasks_claimable", table_name="tasks")
