"""SQLAlchemy ORM table models for the allocation service.

Categories:
- IMMUTABLE: AllocationRequestRow, TaskAllocationRow (written once per
  successful allocation, in the same unit of work)
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.db.session import Base


class AllocationRequestRow(Base):
    """One accepted allocation request."""

    __tablename__ = "allocation_requests"

    request_id: Mapped[UUID] = mapped_column(primary_key=True)
    total_minutes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    task_count: Mapped[int] = mapped_column(Integer, nullable=False)
    allocator_version: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class TaskAllocationRow(Base):
    """Per-task result of an allocation request. Surrogate PK (id)."""

    __tablename__ = "task_allocations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    request_id: Mapped[UUID] = mapped_column(
        ForeignKey("allocation_requests.request_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    task_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    ratio: Mapped[float] = mapped_column(Float, nullable=False)
    allocated_minutes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    min_minutes: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    max_minutes: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
