"""Allocation repository — accepted requests and their per-task results.

Repos take AsyncSession, call add()/flush() only — never commit().
The session dependency handles commit/rollback (Unit-of-Work).
"""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.tables import AllocationRequestRow, TaskAllocationRow
from src.engine.allocator import AllocationResult
from src.models.common import utc_now


class AllocationRepository:
    """Append-only store for allocation requests and task allocations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        request_id: UUID,
        total_minutes: int,
        allocator_version: str,
        results: Sequence[AllocationResult],
    ) -> AllocationRequestRow:
        now = utc_now()
        row = AllocationRequestRow(
            request_id=request_id,
            total_minutes=total_minutes,
            task_count=len(results),
            allocator_version=allocator_version,
            created_at=now,
        )
        self._session.add(row)
        # Parent first: task rows reference it by FK.
        await self._session.flush()

        self._session.add_all([
            TaskAllocationRow(
                request_id=request_id,
                position=position,
                task_id=result.task_id,
                ratio=result.ratio,
                allocated_minutes=result.allocated_minutes,
                min_minutes=result.min_minutes,
                max_minutes=result.max_minutes,
                created_at=now,
                updated_at=now,
            )
            for position, result in enumerate(results)
        ])
        await self._session.flush()
        return row

    async def get(self, request_id: UUID) -> AllocationRequestRow | None:
        return await self._session.get(AllocationRequestRow, request_id)

    async def get_tasks(self, request_id: UUID) -> list[TaskAllocationRow]:
        result = await self._session.execute(
            select(TaskAllocationRow)
            .where(TaskAllocationRow.request_id == request_id)
            .order_by(TaskAllocationRow.position)
        )
        return list(result.scalars().all())

    async def list_recent(self, *, limit: int = 50) -> list[AllocationRequestRow]:
        result = await self._session.execute(
            select(AllocationRequestRow)
            .order_by(AllocationRequestRow.created_at.desc(), AllocationRequestRow.request_id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_by_task(self, task_id: str) -> list[TaskAllocationRow]:
        """All stored allocations of one task id, newest first."""
        result = await self._session.execute(
            select(TaskAllocationRow)
            .where(TaskAllocationRow.task_id == task_id)
            .order_by(TaskAllocationRow.created_at.desc(), TaskAllocationRow.id.desc())
        )
        return list(result.scalars().all())
