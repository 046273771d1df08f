"""Shared helpers and base model used across the allocation service."""

from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel
from uuid_extensions import uuid7


def utc_now() -> datetime:
    """Return the current UTC timestamp (timezone-aware)."""
    return datetime.now(tz=timezone.utc)


def new_uuid7() -> UUID:
    """Generate a new time-sortable UUID v7 (request ids sort by creation)."""
    return uuid7()


class AllocationBase(BaseModel):
    """Base model with common configuration for all request schemas."""

    model_config = {
        "populate_by_name": True,
        "protected_namespaces": (),
    }
