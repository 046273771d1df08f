"""Allocation schema — allocation_requests + task_allocations.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # -- Accepted requests (immutable) --
    op.create_table(
        "allocation_requests",
        sa.Column("request_id", sa.Uuid(), primary_key=True),
        sa.Column("total_minutes", sa.BigInteger, nullable=False),
        sa.Column("task_count", sa.Integer, nullable=False),
        sa.Column("allocator_version", sa.String(50), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    # -- Per-task results (immutable, input order kept in position) --
    op.create_table(
        "task_allocations",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "request_id",
            sa.Uuid(),
            sa.ForeignKey("allocation_requests.request_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("task_id", sa.Text, nullable=False),
        sa.Column("ratio", sa.Float, nullable=False),
        sa.Column("allocated_minutes", sa.BigInteger, nullable=False),
        sa.Column("min_minutes", sa.BigInteger, nullable=True),
        sa.Column("max_minutes", sa.BigInteger, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_task_allocations_request_id", "task_allocations", ["request_id"],
    )
    op.create_index(
        "ix_task_allocations_task_id", "task_allocations", ["task_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_task_allocations_task_id", table_name="task_allocations")
    op.drop_index("ix_task_allocations_request_id", table_name="task_allocations")
    op.drop_table("task_allocations")
    op.drop_table("allocation_requests")
