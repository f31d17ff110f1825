from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from spacehub.core.core import Service
from spacehub.core.db import set_fields
from spacehub.core.modules.lesson.models import Lesson, LessonProgress, LessonView, ProgressResult, progress_percent
from spacehub.core.modules.note.models import PublishStatus, publish_changes
from spacehub.core.modules.user.models import UserSummary
from spacehub.errors import NotFoundError, ValidationError
from spacehub.utils import now

logger = structlog.get_logger(__name__)


class LessonService(Service):
    """Lessons and per-member lesson progress."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("lessons")
        self._progress = database.get_collection("lesson_progress")

    async def on_start(self) -> None:
        await self._collection.create_index([("space_id", 1), ("updated_at", -1)])
        await self._progress.create_index([("lesson_id", 1), ("user_id", 1)], unique=True)

    async def get_lesson(self, lesson_id: UUID) -> Lesson:
        lesson = Lesson.from_mongo(await self._collection.find_one({"_id": lesson_id}))
        if lesson is None:
            raise NotFoundError("Lesson not found")
        return lesson

    async def get_lesson_view(self, lesson_id: UUID) -> LessonView:
        return await self._view(await self.get_lesson(lesson_id))

    async def list_lessons(self, space_id: UUID) -> list[LessonView]:
        lessons = await Lesson.list_cursor(self._collection.find({"space_id": space_id}).sort("updated_at", -1))
        users = await self.core.services.user.get_users([lesson.author_id for lesson in lessons])
        return [
            LessonView.from_domain(
                lesson, UserSummary.from_domain(users[lesson.author_id]) if lesson.author_id in users else None
            )
            for lesson in lessons
        ]

    async def create_lesson(
        self,
        space_id: UUID,
        author_id: UUID,
        title: str,
        topics: list[dict[str, Any]],
        description: str | None = None,
        status: PublishStatus = "draft",
    ) -> LessonView:
        title = title.strip()
        if not title:
            raise ValidationError("Title cannot be empty")

        fields = publish_changes({"status": status}, None)
        lesson = Lesson(
            space_id=space_id, author_id=author_id, title=title, description=description, topics=topics, **fields
        )
        await self._collection.insert_one(lesson.to_mongo())
        logger.debug("lesson_created", lesson_id=lesson.id, space_id=space_id)
        return await self._view(lesson)

    async def update_lesson(self, lesson_id: UUID, changes: dict[str, Any]) -> LessonView:
        lesson = await self.get_lesson(lesson_id)
        if "title" in changes:
            changes["title"] = (changes["title"] or "").strip()
            if not changes["title"]:
                raise ValidationError("Title cannot be empty")
        changes = publish_changes(changes, lesson.published_at)
        if changes:
            await self._collection.update_one({"_id": lesson_id}, set_fields(changes))
        return await self.get_lesson_view(lesson_id)

    async def delete_lesson(self, lesson_id: UUID) -> None:
        result = await self._collection.delete_one({"_id": lesson_id})
        if result.deleted_count == 0:
            raise NotFoundError("Lesson not found")
        await self._progress.delete_many({"lesson_id": lesson_id})

    async def delete_space_lessons(self, space_id: UUID) -> None:
        lesson_ids = [doc["_id"] async for doc in self._collection.find({"space_id": space_id}, {"_id": 1})]
        if lesson_ids:
            await self._progress.delete_many({"lesson_id": {"$in": lesson_ids}})
        await self._collection.delete_many({"space_id": space_id})

    async def get_progress(self, lesson_id: UUID, user_id: UUID) -> LessonProgress:
        """Stored progress, or an untouched zero-progress record."""
        progress = LessonProgress.from_mongo(await self._progress.find_one({"lesson_id": lesson_id, "user_id": user_id}))
        if progress is None:
            return LessonProgress(lesson_id=lesson_id, user_id=user_id, last_accessed_at=None)
        return progress

    async def save_progress(self, lesson_id: UUID, user_id: UUID, completed_topics: list[int]) -> ProgressResult:
        """Record completed topics, deriving the percentage from the lesson's topic count."""
        lesson = await self.get_lesson(lesson_id)
        topic_count = len(lesson.topics)
        for index in completed_topics:
            if not 0 <= index < topic_count:
                raise ValidationError(f"Topic index {index} is out of range")

        completed = sorted(set(completed_topics))
        percent = progress_percent(completed, topic_count)
        existing = LessonProgress.from_mongo(await self._progress.find_one({"lesson_id": lesson_id, "user_id": user_id}))
        timestamp = now()

        if existing is None:
            progress = LessonProgress(
                lesson_id=lesson_id,
                user_id=user_id,
                completed_topics=completed,
                progress=percent,
                last_accessed_at=timestamp,
                completed_at=timestamp if percent == 100 else None,
            )
            await self._progress.insert_one(progress.to_mongo())
            return ProgressResult(progress=progress, created=True)

        changes: dict[str, Any] = {"completed_topics": completed, "progress": percent, "last_accessed_at": timestamp}
        if percent == 100 and existing.completed_at is None:
            changes["completed_at"] = timestamp
        await self._progress.update_one({"_id": existing.id}, {"$set": changes})
        return ProgressResult(progress=existing.model_copy(update=changes), created=False)

    async def _view(self, lesson: Lesson) -> LessonView:
        users = await self.core.services.user.get_users([lesson.author_id])
        author = users.get(lesson.author_id)
        return LessonView.from_domain(lesson, UserSummary.from_domain(author) if author else None)
