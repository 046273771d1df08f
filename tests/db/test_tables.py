"""Tests for SQLAlchemy ORM models — src/db/tables.py.

Tests verify:
- Both tables are created
- Nullable bound columns
- Task rows reference their request by FK (enforced on SQLite too)
"""

import pytest
from sqlalchemy import inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.config.settings import Settings
from src.db.session import Base, build_engine
from src.db.tables import AllocationRequestRow, TaskAllocationRow
from src.models.common import new_uuid7, utc_now


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def session(engine):
    async with async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)() as s:
        yield s


class TestTableCreation:
    @pytest.mark.anyio
    async def test_tables_exist(self, engine) -> None:
        async with engine.connect() as conn:
            names = await conn.run_sync(lambda c: inspect(c).get_table_names())
        assert set(names) == {"allocation_requests", "task_allocations"}

    @pytest.mark.anyio
    async def test_bound_columns_nullable(self, engine) -> None:
        async with engine.connect() as conn:
            columns = await conn.run_sync(
                lambda c: {col["name"]: col for col in inspect(c).get_columns("task_allocations")}
            )
        assert columns["min_minutes"]["nullable"] is True
        assert columns["max_minutes"]["nullable"] is True
        assert columns["allocated_minutes"]["nullable"] is False

    @pytest.mark.anyio
    async def test_task_allocations_foreign_key(self, engine) -> None:
        async with engine.connect() as conn:
            fks = await conn.run_sync(
                lambda c: inspect(c).get_foreign_keys("task_allocations")
            )
        assert len(fks) == 1
        assert fks[0]["referred_table"] == "allocation_requests"
        assert fks[0]["constrained_columns"] == ["request_id"]


class TestRoundTrip:
    @pytest.mark.anyio
    async def test_insert_request_with_tasks(self, session: AsyncSession) -> None:
        rid = new_uuid7()
        now = utc_now()
        session.add(AllocationRequestRow(
            request_id=rid, total_minutes=10, task_count=1,
            allocator_version="1.0.0", created_at=now,
        ))
        await session.flush()
        session.add(TaskAllocationRow(
            request_id=rid, position=0, task_id="solo", ratio=1.0,
            allocated_minutes=10, min_minutes=None, max_minutes=None,
            created_at=now, updated_at=now,
        ))
        await session.commit()

        result = await session.execute(
            select(TaskAllocationRow).where(TaskAllocationRow.request_id == rid)
        )
        row = result.scalar_one()
        assert row.id is not None
        assert row.allocated_minutes == 10
        assert row.max_minutes is None


class TestSqliteForeignKeys:
    @pytest.mark.anyio
    async def test_orphan_task_row_rejected(self, tmp_path) -> None:
        settings = Settings(
            _env_file=None,
            DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'fk.db'}",
        )
        eng = build_engine(settings)
        async with eng.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        now = utc_now()
        async with async_sessionmaker(bind=eng, class_=AsyncSession)() as s:
            s.add(TaskAllocationRow(
                request_id=new_uuid7(), position=0, task_id="orphan", ratio=1.0,
                allocated_minutes=1, created_at=now, updated_at=now,
            ))
            with pytest.raises(IntegrityError):
                await s.flush()
        await eng.dispose()
