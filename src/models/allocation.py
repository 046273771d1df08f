"""Pydantic schemas for allocation requests.

TaskRatio and AllocationRequest carry every structural rule a request must
satisfy before it reaches the allocator:

- total_minutes: strict positive integer, at most MAX_MINUTES
- tasks: at least one, task_id unique after whitespace stripping
- ratio: positive finite number
- min_minutes >= 0, max_minutes > 0, min_minutes <= max_minutes, both at most MAX_MINUTES

Numeric feasibility against total_minutes is NOT checked here; it needs the
aggregate view the allocator builds.
"""

from typing import Annotated

from pydantic import Field, StringConstraints, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from src.models.common import AllocationBase

# Largest minute count accepted anywhere in a request: every value up to it
# is exact in float64 and fits a BIGINT column.
MAX_MINUTES = 2**53

TaskId = Annotated[
    str,
    StringConstraints(strict=True, strip_whitespace=True, min_length=1),
]
Ratio = Annotated[float, Field(gt=0, allow_inf_nan=False)]
TotalMinutes = Annotated[int, Field(strict=True, gt=0, le=MAX_MINUTES)]
MinMinutes = Annotated[int, Field(strict=True, ge=0, le=MAX_MINUTES)]
MaxMinutes = Annotated[int, Field(strict=True, gt=0, le=MAX_MINUTES)]


class TaskRatio(AllocationBase):
    """One task's weight and optional inclusive bounds."""

    task_id: TaskId
    ratio: Ratio = Field(description="Relative weight, strictly positive.")
    min_minutes: MinMinutes | None = None
    max_minutes: MaxMinutes | None = None

    @field_validator("ratio", mode="before")
    @classmethod
    def _ratio_is_number(cls, value: object) -> object:
        # bool is an int subclass and numeric strings coerce in lax mode.
        if isinstance(value, (bool, str, bytes)):
            raise PydanticCustomError("float_type", "ratio must be a number")
        return value

    @field_validator("max_minutes")
    @classmethod
    def _max_not_below_min(cls, value: int | None, info: ValidationInfo) -> int | None:
        if value is None:
            return value
        minimum = info.data.get("min_minutes")
        if minimum is not None and minimum > value:
            raise PydanticCustomError(
                "min_exceeds_max",
                "min_minutes cannot exceed max_minutes",
            )
        return value


class AllocationRequest(AllocationBase):
    """A total to split across an ordered list of tasks.

    Task order is only a tie-break key, never a priority.
    """

    total_minutes: TotalMinutes
    tasks: list[TaskRatio] = Field(min_length=1)

    @field_validator("tasks")
    @classmethod
    def _unique_task_ids(cls, tasks: list[TaskRatio]) -> list[TaskRatio]:
        seen: set[str] = set()
        for task in tasks:
            if task.task_id in seen:
                raise PydanticCustomError(
                    "duplicate_task_id",
                    "task_id must be unique (duplicate: {task_id})",
                    {"task_id": task.task_id},
                )
            seen.add(task.task_id)
        return tasks
