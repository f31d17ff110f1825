from datetime import datetime
from typing import Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field

T = TypeVar("T")

MAX_PAGE_LIMIT = 100


class CursorPage(BaseModel, Generic[T]):
    """Newest-first page of items addressed by a `(before, before_id)` cursor."""

    items: list[T] = Field(..., description="Items in current page, newest first")
    limit: int = Field(..., description="Maximum items per page", ge=1, le=MAX_PAGE_LIMIT)
    next_before: datetime | None = Field(
        None, description="Pass as `before` to fetch the next (older) page; null when no more items"
    )
    next_before_id: UUID | None = Field(
        None, description="Pass as `before_id` with `next_before` so messages sharing a timestamp are not skipped"
    )


def clamp_limit(limit: int) -> int:
    return max(1, min(limit, MAX_PAGE_LIMIT))
