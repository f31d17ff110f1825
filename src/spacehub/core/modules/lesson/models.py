from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from spacehub.core.db import MongoModel, TimestampedModel
from spacehub.core.modules.note.models import PublishStatus
from spacehub.core.modules.user.models import UserSummary
from spacehub.utils import now


class Lesson(TimestampedModel):
    """Ordered list of topics a member can work through."""

    space_id: UUID
    author_id: UUID
    title: str
    description: str | None = None
    topics: list[dict[str, Any]]  # opaque topic objects, order matters
    status: PublishStatus = "draft"
    published_at: datetime | None = None


class LessonView(Lesson):
    author: UserSummary | None = None

    @classmethod
    def from_domain(cls, lesson: Lesson, author: UserSummary | None) -> "LessonView":
        return cls(**lesson.model_dump(), author=author)


class LessonProgress(MongoModel):
    """Per-user progress through a lesson; unique per (lesson_id, user_id)."""

    lesson_id: UUID
    user_id: UUID
    completed_topics: list[int] = Field(default_factory=list)  # topic indexes
    progress: int = Field(0, ge=0, le=100)  # percent
    last_accessed_at: datetime | None = Field(default_factory=now)
    completed_at: datetime | None = None  # first time progress reached 100


class ProgressResult(BaseModel):
    progress: LessonProgress
    created: bool


def progress_percent(completed_topics: list[int], topic_count: int) -> int:
    if topic_count == 0:
        return 0
    return min(100, round(100 * len(set(completed_topics)) / topic_count))
