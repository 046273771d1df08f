"""FastAPI allocation endpoints.

POST /v1/allocations                      — validate, allocate, persist
GET  /v1/allocations                      — list stored requests (newest first)
GET  /v1/allocations/{request_id}         — one stored request with its allocations
GET  /v1/tasks/{task_id}/allocations      — allocation history of one task id

Deterministic engine code only. Error mapping:
- InvalidInputError -> 422 {"error": "INVALID_INPUT", "violations": [...]}
- InfeasibleError   -> 422 {"error": "INFEASIBLE", "check": ...}
Nothing is persisted unless the allocation succeeds.
"""

from typing import Any
from uuid import UUID

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import BaseModel

from src.api.dependencies import get_allocation_repo
from src.db.tables import AllocationRequestRow, TaskAllocationRow
from src.engine.allocator import ALLOCATOR_VERSION, allocate
from src.engine.errors import InfeasibleError, InvalidInputError
from src.engine.request_validator import validate_allocation_request
from src.models.common import new_uuid7
from src.repositories.allocations import AllocationRepository

logger = structlog.get_logger()

router = APIRouter(prefix="/v1", tags=["allocations"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class TaskAllocationResponse(BaseModel):
    task_id: str
    ratio: float
    allocated_minutes: int
    min_minutes: int | None = None
    max_minutes: int | None = None


class AllocationResponse(BaseModel):
    request_id: str
    total_minutes: int
    allocator_version: str
    created_at: str
    allocations: list[TaskAllocationResponse]


class AllocationSummaryResponse(BaseModel):
    request_id: str
    total_minutes: int
    task_count: int
    allocator_version: str
    created_at: str


class TaskHistoryEntryResponse(BaseModel):
    request_id: str
    task_id: str
    ratio: float
    allocated_minutes: int
    min_minutes: int | None = None
    max_minutes: int | None = None
    created_at: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _task_response(row: TaskAllocationRow) -> TaskAllocationResponse:
    return TaskAllocationResponse(
        task_id=row.task_id,
        ratio=row.ratio,
        allocated_minutes=row.allocated_minutes,
        min_minutes=row.min_minutes,
        max_minutes=row.max_minutes,
    )


def _summary_response(row: AllocationRequestRow) -> AllocationSummaryResponse:
    return AllocationSummaryResponse(
        request_id=str(row.request_id),
        total_minutes=row.total_minutes,
        task_count=row.task_count,
        allocator_version=row.allocator_version,
        created_at=str(row.created_at),
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/allocations",
    status_code=201,
    response_model=AllocationResponse,
    response_model_exclude_none=True,
)
async def create_allocation(
    payload: Any = Body(...),
    repo: AllocationRepository = Depends(get_allocation_repo),
) -> AllocationResponse:
    """Split total_minutes across the requested tasks and store the result."""
    try:
        request = validate_allocation_request(payload)
        results = allocate(request)
    except InvalidInputError as exc:
        logger.info(
            "allocation_rejected",
            error=exc.code,
            violations=len(exc.violations),
        )
        raise HTTPException(
            status_code=422,
            detail={
                "error": exc.code,
                "message": exc.message,
                "violations": [v.as_dict() for v in exc.violations],
            },
        ) from exc
    except InfeasibleError as exc:
        logger.info("allocation_rejected", error=exc.code, check=exc.check.value)
        raise HTTPException(
            status_code=422,
            detail={
                "error": exc.code,
                "check": exc.check.value,
                "message": exc.message,
            },
        ) from exc

    request_id = new_uuid7()
    row = await repo.create(
        request_id=request_id,
        total_minutes=request.total_minutes,
        allocator_version=ALLOCATOR_VERSION,
        results=results,
    )
    logger.info(
        "allocation_created",
        request_id=str(request_id),
        total_minutes=request.total_minutes,
        task_count=len(results),
    )

    return AllocationResponse(
        request_id=str(request_id),
        total_minutes=request.total_minutes,
        allocator_version=ALLOCATOR_VERSION,
        created_at=str(row.created_at),
        allocations=[
            TaskAllocationResponse(**result.as_dict()) for result in results
        ],
    )


@router.get("/allocations", response_model=list[AllocationSummaryResponse])
async def list_allocations(
    limit: int = Query(default=50, ge=1, le=200),
    repo: AllocationRepository = Depends(get_allocation_repo),
) -> list[AllocationSummaryResponse]:
    """List stored allocation requests, newest first."""
    rows = await repo.list_recent(limit=limit)
    return [_summary_response(r) for r in rows]


@router.get(
    "/allocations/{request_id}",
    response_model=AllocationResponse,
    response_model_exclude_none=True,
)
async def get_allocation(
    request_id: UUID,
    repo: AllocationRepository = Depends(get_allocation_repo),
) -> AllocationResponse:
    """Get a stored allocation request with its allocations in input order."""
    row = await repo.get(request_id)
    if row is None:
        raise HTTPException(
            status_code=404,
            detail=f"Allocation request {request_id} not found.",
        )

    tasks = await repo.get_tasks(request_id)
    return AllocationResponse(
        request_id=str(row.request_id),
        total_minutes=row.total_minutes,
        allocator_version=row.allocator_version,
        created_at=str(row.created_at),
        allocations=[_task_response(t) for t in tasks],
    )


@router.get(
    "/tasks/{task_id}/allocations",
    response_model=list[TaskHistoryEntryResponse],
)
async def get_task_history(
    task_id: str,
    repo: AllocationRepository = Depends(get_allocation_repo),
) -> list[TaskHistoryEntryResponse]:
    """All stored allocations for one task id, newest first."""
    rows = await repo.get_by_task(task_id.strip())
    return [
        TaskHistoryEntryResponse(
            request_id=str(r.request_id),
            task_id=r.task_id,
            ratio=r.ratio,
            allocated_minutes=r.allocated_minutes,
            min_minutes=r.min_minutes,
            max_minutes=r.max_minutes,
            created_at=str(r.created_at),
        )
        for r in rows
    ]
