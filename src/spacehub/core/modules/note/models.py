from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from spacehub.core.db import TimestampedModel
from spacehub.core.modules.user.models import UserSummary
from spacehub.utils import now

PublishStatus = Literal["draft", "published"]


class Note(TimestampedModel):
    """Block-structured document authored inside a space."""

    space_id: UUID
    author_id: UUID
    title: str
    blocks: list[dict[str, Any]]  # opaque editor blocks
    status: PublishStatus = "draft"
    published_at: datetime | None = None  # set on first publish, never cleared


class NoteView(Note):
    author: UserSummary | None = None

    @classmethod
    def from_domain(cls, note: Note, author: UserSummary | None) -> "NoteView":
        return cls(**note.model_dump(), author=author)


def publish_changes(changes: dict[str, Any], published_at: datetime | None) -> dict[str, Any]:
    """Stamp published_at when a draft is published for the first time."""
    if changes.get("status") == "published" and published_at is None:
        return {**changes, "published_at": now()}
    return changes
