from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from spacehub.core.core import Service
from spacehub.core.db import set_fields
from spacehub.core.modules.note.models import Note, NoteView, PublishStatus, publish_changes
from spacehub.core.modules.user.models import UserSummary
from spacehub.errors import NotFoundError, ValidationError

logger = structlog.get_logger(__name__)


class NoteService(Service):
    """Notes authored by space members."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("notes")

    async def on_start(self) -> None:
        await self._collection.create_index([("space_id", 1), ("updated_at", -1)])

    async def get_note(self, note_id: UUID) -> Note:
        note = Note.from_mongo(await self._collection.find_one({"_id": note_id}))
        if note is None:
            raise NotFoundError("Note not found")
        return note

    async def get_note_view(self, note_id: UUID) -> NoteView:
        note = await self.get_note(note_id)
        return await self._view(note)

    async def list_notes(self, space_id: UUID) -> list[NoteView]:
        """Notes in a space, most recently updated first."""
        notes = await Note.list_cursor(self._collection.find({"space_id": space_id}).sort("updated_at", -1))
        users = await self.core.services.user.get_users([n.author_id for n in notes])
        return [
            NoteView.from_domain(n, UserSummary.from_domain(users[n.author_id]) if n.author_id in users else None)
            for n in notes
        ]

    async def create_note(
        self,
        space_id: UUID,
        author_id: UUID,
        title: str,
        blocks: list[dict[str, Any]],
        status: PublishStatus = "draft",
    ) -> NoteView:
        title = title.strip()
        if not title:
            raise ValidationError("Title cannot be empty")

        fields = publish_changes({"status": status}, None)
        note = Note(space_id=space_id, author_id=author_id, title=title, blocks=blocks, **fields)
        await self._collection.insert_one(note.to_mongo())
        logger.debug("note_created", note_id=note.id, space_id=space_id)
        return await self._view(note)

    async def update_note(self, note_id: UUID, changes: dict[str, Any]) -> NoteView:
        note = await self.get_note(note_id)
        if "title" in changes:
            changes["title"] = (changes["title"] or "").strip()
            if not changes["title"]:
                raise ValidationError("Title cannot be empty")
        changes = publish_changes(changes, note.published_at)
        if changes:
            await self._collection.update_one({"_id": note_id}, set_fields(changes))
        return await self.get_note_view(note_id)

    async def delete_note(self, note_id: UUID) -> None:
        result = await self._collection.delete_one({"_id": note_id})
        if result.deleted_count == 0:
            raise NotFoundError("Note not found")

    async def delete_space_notes(self, space_id: UUID) -> None:
        await self._collection.delete_many({"space_id": space_id})

    async def _view(self, note: Note) -> NoteView:
        users = await self.core.services.user.get_users([note.author_id])
        author = users.get(note.author_id)
        return NoteView.from_domain(note, UserSummary.from_domain(author) if author else None)
