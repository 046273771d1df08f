"""FastAPI dependency injection factories for repositories.

Each factory takes AsyncSession via Depends(get_async_session) and returns
a repository instance. API endpoints use these via Depends().
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.session import get_async_session
from src.repositories.allocations import AllocationRepository

# ---------------------------------------------------------------------------
# Allocations
# ---------------------------------------------------------------------------


async def get_allocation_repo(
    session: AsyncSession = Depends(get_async_session),
) -> AllocationRepository:
    return AllocationRepository(session)
