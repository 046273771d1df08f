"""Shared pytest fixtures for the allocation service test suite.

Provides:
- anyio_backend: run async tests on asyncio only
- db_engine: in-memory SQLite async engine with all tables
- db_session: SAVEPOINT-isolated async session (app commits don't leak)
- client: AsyncClient with the session dependency overridden
- make_request: builds validated AllocationRequests from compact task specs
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from src.db.session import Base, get_async_session
from src.models.allocation import AllocationRequest
import src.db.tables  # noqa: F401 — register ORM models on Base.metadata


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine with all tables."""
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Provide a SAVEPOINT-isolated session.

    The outer transaction is never committed — it rolls back at teardown.
    A commit from the session dependency only releases the SAVEPOINT, which
    is restarted so later statements stay inside the outer transaction.
    """
    async with db_engine.connect() as conn:
        trans = await conn.begin()
        session = AsyncSession(bind=conn, expire_on_commit=False)

        nested = await conn.begin_nested()

        @event.listens_for(session.sync_session, "after_transaction_end")
        def restart_savepoint(sync_session, transaction):  # noqa: ARG001
            nonlocal nested
            if transaction.nested and not transaction._parent.nested:
                nested = conn.sync_connection.begin_nested()

        yield session

        await session.close()
        await trans.rollback()


@pytest.fixture
async def client(db_session):
    """AsyncClient with get_async_session overridden to use the test session."""
    from src.api.main import app

    async def _override_session():
        yield db_session

    app.dependency_overrides[get_async_session] = _override_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_request():
    """Build an AllocationRequest from (task_id, ratio[, min[, max]]) tuples."""

    def _make(total_minutes: int, *tasks: tuple) -> AllocationRequest:
        payload_tasks = []
        for task in tasks:
            task_id, ratio, *bounds = task
            entry: dict = {"task_id": task_id, "ratio": ratio}
            if len(bounds) > 0 and bounds[0] is not None:
                entry["min_minutes"] = bounds[0]
            if len(bounds) > 1 and bounds[1] is not None:
                entry["max_minutes"] = bounds[1]
            payload_tasks.append(entry)
        return AllocationRequest.model_validate(
            {"total_minutes": total_minutes, "tasks": payload_tasks},
        )

    return _make
