"""Typed failures raised by the request validator and the allocator.

Both kinds are terminal for a request: no partial allocation is returned.
The transport layer maps them to responses; nothing here knows about HTTP.
"""

from dataclasses import dataclass
from enum import StrEnum


@dataclass(frozen=True)
class FieldViolation:
    """A single rule violation, attributed to a dotted field path."""

    field: str  # e.g. "tasks.2.max_minutes", "tasks", "request"
    message: str
    code: str = "invalid"

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message, "code": self.code}


class InfeasibilityCheck(StrEnum):
    """Which feasibility check rejected a well-formed request."""

    MIN_SUM = "MIN_SUM"
    MAX_SUM = "MAX_SUM"
    CAPACITY_EXHAUSTED = "CAPACITY_EXHAUSTED"


class AllocationError(ValueError):
    """Base class for allocation failures."""

    code = "ALLOCATION_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInputError(AllocationError):
    """Raised when a request (or a task inside it) is malformed."""

    code = "INVALID_INPUT"

    def __init__(
        self,
        message: str,
        violations: tuple[FieldViolation, ...] = (),
    ) -> None:
        super().__init__(message)
        self.violations = violations


class InfeasibleError(AllocationError):
    """Raised when a well-formed request has no valid integer allocation."""

    code = "INFEASIBLE"

    def __init__(self, message: str, check: InfeasibilityCheck) -> None:
        super().__init__(message)
        self.check = check
