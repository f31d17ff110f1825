from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from spacehub.core.db import MongoModel
from spacehub.core.modules.user.models import UserSummary
from spacehub.utils import now

MessageType = Literal["text", "image", "system"]


class Attachment(BaseModel):
    type: str
    url: str
    name: str | None = None


class Message(MongoModel):
    """Chat message posted to a space, optionally replying to another message."""

    space_id: UUID
    user_id: UUID
    parent_message_id: UUID | None = None
    content: str | None = None
    message_type: MessageType = "text"
    attachments: list[Attachment] | None = None
    created_at: datetime = Field(default_factory=now)


class Reaction(MongoModel):
    """Emoji reaction; unique per (message_id, user_id, emoji)."""

    message_id: UUID
    user_id: UUID
    emoji: str
    created_at: datetime = Field(default_factory=now)


class MessageView(Message):
    user: UserSummary | None = None

    @classmethod
    def from_domain(cls, message: Message, user: UserSummary | None) -> "MessageView":
        return cls(**message.model_dump(), user=user)


class ReactionView(Reaction):
    user: UserSummary | None = None

    @classmethod
    def from_domain(cls, reaction: Reaction, user: UserSummary | None) -> "ReactionView":
        return cls(**reaction.model_dump(), user=user)
