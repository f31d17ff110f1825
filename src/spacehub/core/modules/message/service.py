from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from spacehub.core.core import Service
from spacehub.core.modules.message.models import Attachment, Message, MessageType, MessageView, Reaction, ReactionView
from spacehub.core.modules.user.models import UserSummary
from spacehub.core.pagination import CursorPage, clamp_limit
from spacehub.errors import ConflictError, NotFoundError, ValidationError

logger = structlog.get_logger(__name__)

DEFAULT_MESSAGE_LIMIT = 50


class MessageService(Service):
    """Space chat history and reactions."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("messages")
        self._reactions = database.get_collection("message_reactions")

    async def on_start(self) -> None:
        await self._collection.create_index([("space_id", 1), ("created_at", -1), ("_id", -1)])
        await self._reactions.create_index([("message_id", 1), ("user_id", 1), ("emoji", 1)], unique=True)

    async def get_message(self, message_id: UUID) -> Message:
        message = Message.from_mongo(await self._collection.find_one({"_id": message_id}))
        if message is None:
            raise NotFoundError("Message not found")
        return message

    async def get_messages(
        self,
        space_id: UUID,
        limit: int = DEFAULT_MESSAGE_LIMIT,
        before: datetime | None = None,
        before_id: UUID | None = None,
    ) -> CursorPage[MessageView]:
        """Newest-first page of messages older than the `(before, before_id)` cursor.

        Messages are ordered by `(created_at, _id)` so that messages sharing a
        timestamp are still paged exactly once. Without `before_id` the cursor
        is the timestamp alone.
        """
        limit = clamp_limit(limit)
        query: dict[str, Any] = {"space_id": space_id}
        if before is not None:
            if before.tzinfo is None:
                # Stored datetimes are UTC; naive query values are read as UTC too
                before = before.replace(tzinfo=UTC)
            if before_id is None:
                query["created_at"] = {"$lt": before}
            else:
                query["$or"] = [
                    {"created_at": {"$lt": before}},
                    {"created_at": before, "_id": {"$lt": before_id}},
                ]

        cursor = self._collection.find(query).sort([("created_at", -1), ("_id", -1)]).limit(limit)
        messages = await Message.list_cursor(cursor)
        summaries = await self._summaries([m.user_id for m in messages])
        last = messages[-1] if len(messages) == limit else None
        return CursorPage(
            items=[MessageView.from_domain(m, summaries.get(m.user_id)) for m in messages],
            limit=limit,
            next_before=last.created_at if last else None,
            next_before_id=last.id if last else None,
        )

    async def create_message(
        self,
        space_id: UUID,
        user_id: UUID,
        content: str | None,
        message_type: MessageType = "text",
        attachments: list[Attachment] | None = None,
        parent_message_id: UUID | None = None,
    ) -> MessageView:
        if not (content and content.strip()) and not attachments:
            raise ValidationError("Message must have content or attachments")
        if parent_message_id is not None:
            parent = await self.get_message(parent_message_id)
            if parent.space_id != space_id:
                raise ValidationError("Reply must target a message in the same space")

        message = Message(
            space_id=space_id,
            user_id=user_id,
            parent_message_id=parent_message_id,
            content=content,
            message_type=message_type,
            attachments=attachments,
        )
        await self._collection.insert_one(message.to_mongo())
        logger.debug("message_created", message_id=message.id, space_id=space_id)
        summaries = await self._summaries([user_id])
        return MessageView.from_domain(message, summaries.get(user_id))

    async def get_reactions(self, message_id: UUID) -> list[ReactionView]:
        reactions = await Reaction.list_cursor(self._reactions.find({"message_id": message_id}).sort("created_at", 1))
        summaries = await self._summaries([r.user_id for r in reactions])
        return [ReactionView.from_domain(r, summaries.get(r.user_id)) for r in reactions]

    async def add_reaction(self, message_id: UUID, user_id: UUID, emoji: str) -> ReactionView:
        emoji = emoji.strip()
        if not emoji:
            raise ValidationError("Emoji is required")

        query = {"message_id": message_id, "user_id": user_id, "emoji": emoji}
        if await self._reactions.find_one(query) is not None:
            raise ConflictError("Reaction already exists")

        reaction = Reaction(message_id=message_id, user_id=user_id, emoji=emoji)
        try:
            await self._reactions.insert_one(reaction.to_mongo())
        except DuplicateKeyError as e:
            raise ConflictError("Reaction already exists") from e

        summaries = await self._summaries([user_id])
        return ReactionView.from_domain(reaction, summaries.get(user_id))

    async def remove_reaction(self, message_id: UUID, user_id: UUID, emoji: str) -> None:
        """Remove the caller's reaction; removing a missing reaction is a no-op."""
        await self._reactions.delete_one({"message_id": message_id, "user_id": user_id, "emoji": emoji})

    async def delete_space_messages(self, space_id: UUID) -> None:
        message_ids = [doc["_id"] async for doc in self._collection.find({"space_id": space_id}, {"_id": 1})]
        if message_ids:
            await self._reactions.delete_many({"message_id": {"$in": message_ids}})
        await self._collection.delete_many({"space_id": space_id})

    async def _summaries(self, user_ids: list[UUID]) -> dict[UUID, UserSummary]:
        users = await self.core.services.user.get_users(user_ids)
        return {user_id: UserSummary.from_domain(user) for user_id, user in users.items()}
