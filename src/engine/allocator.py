"""Bounded Apportionment Allocator: largest remainder under min/max caps.

Deterministic engine code: NumPy and exact rationals only, no I/O, no state
outliving a call.

Algorithm:
1. Normalise ratios against their sequential sum.
2. Reserve every task's minimum.
3. Reject totals below sum(min), or above sum(max) when every task is bounded.
4. Floor pass: each task takes floor(pool * ratio / sum(ratio)), capped by
   headroom. The floors and remainders are computed on exact fractions of
   the float ratios, so the floors never overshoot the pool.
5. Repair loop: leftover units go one at a time by
   (remainder desc, normalized desc, index asc). Whole passes in which every
   eligible task takes one unit are granted together, and a lone eligible
   task takes everything it can at once, so large totals never loop per unit.

Tie-break contract: remainders and normalized ratios closer than
ALLOCATION_EPSILON compare equal, which hands exact ties to the lowest index.
"""

import logging
import math
from dataclasses import dataclass
from fractions import Fraction
from functools import cmp_to_key

import numpy as np

from src.engine.errors import (
    FieldViolation,
    InfeasibilityCheck,
    InfeasibleError,
    InvalidInputError,
)
from src.models.allocation import AllocationRequest

logger = logging.getLogger(__name__)

ALLOCATOR_VERSION = "1.0.0"

# Tolerance for remainder/normalized ties and headroom checks.
ALLOCATION_EPSILON = 1e-9

# Remainder sentinel: no headroom left after reserving the minimum.
AT_CAPACITY = -1.0

MIN_SUM_REASON = "total_minutes is smaller than the sum of minimums"
MAX_SUM_REASON = "total_minutes exceeds the sum of maximums"
EXHAUSTED_REASON = "unable to satisfy maximum constraints with the given total"
STALLED_REASON = "unable to distribute remaining minutes due to maximum constraints"


# ---------------------------------------------------------------------------
# Engine-level dataclasses (not Pydantic)
# ---------------------------------------------------------------------------


@dataclass
class TaskState:
    """Per-task bookkeeping, owned by a single allocation run."""

    task_id: str
    ratio: float
    min_minutes: int
    max_minutes: float  # int bound, or math.inf when unbounded
    allocation: int
    remainder: float
    normalized: float
    index: int

    @property
    def is_bounded(self) -> bool:
        return not math.isinf(self.max_minutes)

    def has_headroom(self, epsilon: float) -> bool:
        return self.allocation + epsilon < self.max_minutes

    def passes_left(self, epsilon: float) -> float:
        """Consecutive one-unit passes before has_headroom turns False."""
        if not self.is_bounded:
            return math.inf
        return max(0, math.ceil(self.max_minutes - self.allocation - epsilon))


@dataclass(frozen=True)
class AllocationResult:
    """Final allocation for one task. Bounds are echoed only when set."""

    task_id: str
    ratio: float
    allocated_minutes: int
    min_minutes: int | None = None
    max_minutes: int | None = None

    def as_dict(self) -> dict:
        data: dict = {
            "task_id": self.task_id,
            "ratio": self.ratio,
            "allocated_minutes": self.allocated_minutes,
        }
        if self.min_minutes is not None:
            data["min_minutes"] = self.min_minutes
        if self.max_minutes is not None:
            data["max_minutes"] = self.max_minutes
        return data


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def allocate(
    request: AllocationRequest,
    *,
    epsilon: float = ALLOCATION_EPSILON,
) -> list[AllocationResult]:
    """Split ``request.total_minutes`` across its tasks.

    Args:
        request: A validated AllocationRequest.
        epsilon: Tie tolerance. Only boundary-tie tests override it.

    Returns:
        One AllocationResult per task, in input order. The allocations sum
        to total_minutes and each lies within its task's bounds.

    Raises:
        InvalidInputError: ratio sum is not positive, or a task has
            min_minutes > max_minutes.
        InfeasibleError: no integer allocation satisfies the bounds.
    """
    total = request.total_minutes

    # Sequential sum in input order.
    ratio_sum = sum(task.ratio for task in request.tasks)
    if not math.isfinite(ratio_sum) or ratio_sum <= 0:
        raise InvalidInputError(
            "sum of ratios must be a positive finite number",
            violations=(
                FieldViolation(
                    field="tasks",
                    message=f"sum of ratios is {ratio_sum!r}",
                    code="ratio_sum",
                ),
            ),
        )

    states = _initial_states(request, ratio_sum)

    floor_sum = sum(state.allocation for state in states)
    if floor_sum > total:
        raise InfeasibleError(MIN_SUM_REASON, InfeasibilityCheck.MIN_SUM)

    if all(state.is_bounded for state in states):
        max_sum = sum(int(state.max_minutes) for state in states)
        if max_sum < total:
            raise InfeasibleError(MAX_SUM_REASON, InfeasibilityCheck.MAX_SUM)

    if total == floor_sum:
        logger.debug("Minimums fill total_minutes=%d exactly", total)
        return _results(states)

    carried = _floor_pass(states, total - floor_sum)
    units_left = total - (floor_sum + carried)
    logger.debug(
        "Floor pass placed %d of %d pooled minutes, %d left for remainders",
        carried, total - floor_sum, units_left,
    )

    _distribute_remainder(states, units_left, epsilon)
    return _results(states)


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


def _initial_states(request: AllocationRequest, ratio_sum: float) -> list[TaskState]:
    states: list[TaskState] = []
    for index, task in enumerate(request.tasks):
        minimum = task.min_minutes if task.min_minutes is not None else 0
        maximum = task.max_minutes if task.max_minutes is not None else math.inf
        if minimum > maximum:
            raise InvalidInputError(
                f"min_minutes cannot exceed max_minutes for task {task.task_id}",
                violations=(
                    FieldViolation(
                        field=f"tasks.{index}.max_minutes",
                        message="min_minutes cannot exceed max_minutes",
                        code="min_exceeds_max",
                    ),
                ),
            )
        states.append(TaskState(
            task_id=task.task_id,
            ratio=task.ratio,
            min_minutes=minimum,
            max_minutes=maximum,
            allocation=minimum,
            remainder=0.0,
            normalized=task.ratio / ratio_sum,
            index=index,
        ))
    return states


def _floor_pass(states: list[TaskState], pool: int) -> int:
    """Give each task floor(pool * ratio / sum(ratio)), capped by its headroom.

    Returns the number of minutes placed, never more than pool. Tasks with
    no headroom get the AT_CAPACITY remainder and receive nothing.
    """
    allocation = np.array([state.allocation for state in states], dtype=float)
    maximum = np.array([state.max_minutes for state in states], dtype=float)

    capacity = np.maximum(0.0, np.floor(maximum - allocation))
    has_capacity = capacity > 0

    # Float ratios are exact binary fractions.
    ratios = [Fraction(state.ratio) for state in states]
    exact_sum = sum(ratios, Fraction(0))

    carried = 0
    for state, open_, cap, ratio in zip(states, has_capacity, capacity, ratios):
        if not open_:
            state.remainder = AT_CAPACITY
            continue
        desired = pool * ratio / exact_sum
        granted = int(min(math.floor(desired), cap))
        state.allocation += granted
        state.remainder = float(desired - granted)
        carried += granted
    return carried


def _priority(epsilon: float):
    """Comparator: larger remainder, then larger normalized, then lower index."""

    def compare(a: TaskState, b: TaskState) -> int:
        if abs(b.remainder - a.remainder) > epsilon:
            return -1 if a.remainder > b.remainder else 1
        if abs(b.normalized - a.normalized) > epsilon:
            return -1 if a.normalized > b.normalized else 1
        return a.index - b.index

    return cmp_to_key(compare)


def _distribute_remainder(
    states: list[TaskState],
    units_left: int,
    epsilon: float,
) -> None:
    key = _priority(epsilon)
    passes = 0
    while units_left > 0:
        eligible = sorted(
            (state for state in states if state.has_headroom(epsilon)),
            key=key,
        )
        if not eligible:
            raise InfeasibleError(EXHAUSTED_REASON, InfeasibilityCheck.CAPACITY_EXHAUSTED)

        passes += 1
        if len(eligible) == 1:
            task = eligible[0]
            chunk = min(units_left, task.max_minutes - task.allocation)
            if chunk <= 0:
                raise InfeasibleError(
                    EXHAUSTED_REASON, InfeasibilityCheck.CAPACITY_EXHAUSTED,
                )
            chunk = int(chunk)
            task.allocation += chunk
            units_left -= chunk
            continue

        # Sort keys never change inside the loop, so k full passes over the
        # same eligible set are k units to each task.
        full_passes = min(
            units_left // len(eligible),
            min(task.passes_left(epsilon) for task in eligible),
        )
        if full_passes > 0:
            for task in eligible:
                task.allocation += full_passes
            units_left -= full_passes * len(eligible)
            continue

        granted = 0
        for task in eligible:
            if units_left == 0:
                break
            if not task.has_headroom(epsilon):
                continue
            task.allocation += 1
            units_left -= 1
            granted += 1

        if granted == 0:
            raise InfeasibleError(STALLED_REASON, InfeasibilityCheck.CAPACITY_EXHAUSTED)

    logger.debug("Remainder distribution finished in %d round(s)", passes)


def _results(states: list[TaskState]) -> list[AllocationResult]:
    return [
        AllocationResult(
            task_id=state.task_id,
            ratio=state.ratio,
            allocated_minutes=int(state.allocation),
            min_minutes=state.min_minutes or None,
            max_minutes=int(state.max_minutes) if state.is_bounded else None,
        )
        for state in states
    ]
