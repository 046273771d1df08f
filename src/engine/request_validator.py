"""Request validator: raw payload -> AllocationRequest or field violations.

Pure and side-effect free. The payload is never mutated; pydantic builds a
new AllocationRequest or reports every rule the payload breaks.
"""

from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from src.engine.errors import FieldViolation, InvalidInputError
from src.models.allocation import AllocationRequest

_ROOT_FIELD = "request"


def _field_path(loc: Sequence[int | str]) -> str:
    if not loc:
        return _ROOT_FIELD
    return ".".join(str(part) for part in loc)


def violations_from_validation_error(exc: ValidationError) -> tuple[FieldViolation, ...]:
    """Flatten pydantic errors into dotted-path FieldViolations, in report order."""
    return tuple(
        FieldViolation(
            field=_field_path(err["loc"]),
            message=err["msg"],
            code=err["type"],
        )
        for err in exc.errors(include_url=False)
    )


def validate_allocation_request(payload: Any) -> AllocationRequest:
    """Validate a decoded request payload.

    Returns:
        A fully typed AllocationRequest.

    Raises:
        InvalidInputError: with one FieldViolation per broken rule. Bound
            ordering is reported on ``tasks.<i>.max_minutes`` and duplicate
            ids on ``tasks``.
    """
    if isinstance(payload, AllocationRequest):
        return payload
    try:
        return AllocationRequest.model_validate(payload)
    except ValidationError as exc:
        violations = violations_from_validation_error(exc)
        raise InvalidInputError(
            f"allocation request has {len(violations)} invalid field(s)",
            violations=violations,
        ) from exc
