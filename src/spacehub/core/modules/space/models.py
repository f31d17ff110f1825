"""Spaces and their memberships."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from spacehub.core.db import MongoModel, TimestampedModel
from spacehub.core.modules.user.models import UserSummary
from spacehub.utils import now

SpaceRole = Literal["admin", "member"]
NotificationLevel = Literal["all", "highlights"]
Wallpaper = Literal["neutral", "growth", "custom"]


class Space(TimestampedModel):
    """Shared room holding chat, notes and lessons."""

    name: str
    description: str | None = None
    emoji: str = "🚀"
    wallpaper: Wallpaper = "neutral"
    wallpaper_url: str | None = None  # only meaningful for the custom wallpaper
    invite_code: str  # unique, handed out to let others join
    created_by: UUID


class Membership(MongoModel):
    """Row granting a user access to a space."""

    space_id: UUID
    user_id: UUID
    role: SpaceRole = "member"
    notification_level: NotificationLevel = "all"
    joined_at: datetime = Field(default_factory=now)


class SpaceWithMembership(Space):
    """Space as seen by one of its members."""

    role: SpaceRole
    notification_level: NotificationLevel

    @classmethod
    def from_domain(cls, space: Space, membership: Membership) -> "SpaceWithMembership":
        return cls(**space.model_dump(), role=membership.role, notification_level=membership.notification_level)


class MemberView(BaseModel):
    """Membership with the member's public profile."""

    user_id: UUID
    role: SpaceRole
    notification_level: NotificationLevel
    joined_at: datetime
    user: UserSummary | None = None


class MemberRole(BaseModel):
    role: SpaceRole
    notification_level: NotificationLevel
    joined_at: datetime


class JoinResult(BaseModel):
    space: Space
    created: bool
