from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from spacehub import utils
from spacehub.core.core import Service
from spacehub.core.db import set_fields
from spacehub.core.modules.space.models import (
    JoinResult,
    MemberView,
    Membership,
    Space,
    SpaceWithMembership,
)
from spacehub.core.modules.user.models import UserSummary
from spacehub.errors import NotFoundError, ValidationError

logger = structlog.get_logger(__name__)


class SpaceService(Service):
    """Spaces and the `space_members` rows that gate access to them."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("spaces")
        self._members = database.get_collection("space_members")

    async def on_start(self) -> None:
        await self._collection.create_index([("invite_code", 1)], unique=True)
        await self._members.create_index([("space_id", 1), ("user_id", 1)], unique=True)
        await self._members.create_index([("user_id", 1)])

    async def get_space(self, space_id: UUID) -> Space:
        space = Space.from_mongo(await self._collection.find_one({"_id": space_id}))
        if space is None:
            raise NotFoundError("Space not found")
        return space

    async def get_membership(self, space_id: UUID, user_id: UUID) -> Membership | None:
        return Membership.from_mongo(await self._members.find_one({"space_id": space_id, "user_id": user_id}))

    async def get_spaces_for_user(self, user_id: UUID) -> list[SpaceWithMembership]:
        """Spaces the user belongs to, each annotated with the user's role."""
        memberships = await Membership.list_cursor(self._members.find({"user_id": user_id}))
        if not memberships:
            return []
        by_space = {m.space_id: m for m in memberships}
        spaces = await Space.list_cursor(
            self._collection.find({"_id": {"$in": list(by_space)}}).sort("created_at", -1)
        )
        return [SpaceWithMembership.from_domain(space, by_space[space.id]) for space in spaces]

    async def get_space_for_user(self, space_id: UUID, user_id: UUID) -> SpaceWithMembership:
        space = await self.get_space(space_id)
        membership = await self.get_membership(space_id, user_id)
        if membership is None:
            raise NotFoundError("Space not found")
        return SpaceWithMembership.from_domain(space, membership)

    async def create_space(self, user_id: UUID, data: dict[str, Any]) -> Space:
        """Create a space and make its creator an admin.

        The two inserts are not atomic: if the membership insert fails the
        space row stays behind.
        """
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Space name cannot be empty")

        space = Space(**{**data, "name": name}, invite_code=utils.generate_invite_code(), created_by=user_id)
        await self._collection.insert_one(space.to_mongo())
        await self._members.insert_one(Membership(space_id=space.id, user_id=user_id, role="admin").to_mongo())
        logger.info("space_created", space_id=space.id, user_id=user_id)
        return space

    async def update_space(self, space_id: UUID, changes: dict[str, Any]) -> Space:
        await self.get_space(space_id)
        for key in ("emoji", "wallpaper"):
            if key in changes and changes[key] is None:
                del changes[key]
        if "name" in changes:
            changes["name"] = (changes["name"] or "").strip()
            if not changes["name"]:
                raise ValidationError("Space name cannot be empty")
        if changes:
            await self._collection.update_one({"_id": space_id}, set_fields(changes))
        return await self.get_space(space_id)

    async def delete_space(self, space_id: UUID) -> None:
        """Delete a space with its members and all content posted in it."""
        result = await self._collection.delete_one({"_id": space_id})
        if result.deleted_count == 0:
            raise NotFoundError("Space not found")

        await self._members.delete_many({"space_id": space_id})
        await self.core.services.message.delete_space_messages(space_id)
        await self.core.services.note.delete_space_notes(space_id)
        await self.core.services.lesson.delete_space_lessons(space_id)
        logger.info("space_deleted", space_id=space_id)

    async def join_by_invite_code(self, invite_code: str, user_id: UUID) -> JoinResult:
        """Join a space by its invite code; joining twice is a no-op."""
        space = Space.from_mongo(await self._collection.find_one({"invite_code": invite_code}))
        if space is None:
            raise NotFoundError("Invalid invite code")

        if await self.get_membership(space.id, user_id) is not None:
            return JoinResult(space=space, created=False)

        await self._members.insert_one(Membership(space_id=space.id, user_id=user_id).to_mongo())
        logger.info("space_joined", space_id=space.id, user_id=user_id)
        return JoinResult(space=space, created=True)

    async def get_members(self, space_id: UUID) -> list[MemberView]:
        memberships = await Membership.list_cursor(self._members.find({"space_id": space_id}).sort("joined_at", 1))
        users = await self.core.services.user.get_users([m.user_id for m in memberships])
        return [
            MemberView(
                user_id=m.user_id,
                role=m.role,
                notification_level=m.notification_level,
                joined_at=m.joined_at,
                user=UserSummary.from_domain(users[m.user_id]) if m.user_id in users else None,
            )
            for m in memberships
        ]

    async def get_member(self, space_id: UUID, user_id: UUID) -> Membership:
        membership = await self.get_membership(space_id, user_id)
        if membership is None:
            raise NotFoundError("User is not a member of this space")
        return membership
