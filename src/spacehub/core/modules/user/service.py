from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from spacehub.core.core import Service
from spacehub.core.db import set_fields
from spacehub.core.modules.otp.demo import resolve_identity
from spacehub.core.modules.otp.models import Identity
from spacehub.core.modules.user.models import AvatarType, User
from spacehub.core.modules.user.validators import provisional_username, validate_display_name, validate_username
from spacehub.errors import ConflictError, NotFoundError

logger = structlog.get_logger(__name__)


class UserService(Service):
    """Manages user accounts keyed by their sign-in contact."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("users")

    async def on_start(self) -> None:
        await self._collection.create_index([("username", 1)], unique=True)
        await self._collection.create_index(
            [("email", 1)], unique=True, partialFilterExpression={"email": {"$type": "string"}}
        )
        await self._collection.create_index(
            [("phone", 1)], unique=True, partialFilterExpression={"phone": {"$type": "string"}}
        )

    async def get_user(self, user_id: UUID) -> User:
        user = User.from_mongo(await self._collection.find_one({"_id": user_id}))
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def get_users(self, user_ids: list[UUID]) -> dict[UUID, User]:
        """Batch lookup used to attach author/member summaries."""
        if not user_ids:
            return {}
        users = await User.list_cursor(self._collection.find({"_id": {"$in": list(set(user_ids))}}))
        return {user.id: user for user in users}

    async def find_by_identity(self, identity: Identity) -> User | None:
        if identity.email:
            return User.from_mongo(await self._collection.find_one({"email": identity.email}))
        if identity.phone:
            return User.from_mongo(await self._collection.find_one({"phone": identity.phone}))
        return None

    async def has_username(self, username: str, exclude_user_id: UUID | None = None) -> bool:
        query: dict[str, Any] = {"username": username}
        if exclude_user_id is not None:
            query["_id"] = {"$ne": exclude_user_id}
        return await self._collection.count_documents(query, limit=1) > 0

    async def resolve_user(self, identity: Identity) -> tuple[User, bool]:
        """Find the persisted account for a verified identity, creating it on first sign-in.

        Returns the user and whether it was just created. Demo accounts are
        created with their fixed ids so the id never changes between sign-ins.
        """
        demo = resolve_identity(identity.email or "")
        if demo is not None:
            existing = User.from_mongo(await self._collection.find_one({"_id": demo.id}))
            if existing is not None:
                return existing, False
            user = User(
                id=demo.id,
                email=demo.contact,
                display_name=demo.name,
                username=demo.username,
                avatar_data={"emoji": demo.emoji, "backgroundColor": demo.background_color},
                role=demo.role,
                profile_completed=True,
            )
        else:
            existing = await self.find_by_identity(identity)
            if existing is not None:
                return existing, False
            user = User(
                email=identity.email,
                phone=identity.phone,
                display_name=identity.name,
                username=provisional_username(identity.email or identity.phone or ""),
                avatar_data={"emoji": "👤", "backgroundColor": "#6B73FF"},
            )

        try:
            await self._collection.insert_one(user.to_mongo())
        except DuplicateKeyError:
            # Concurrent first sign-in for the same contact already created it
            existing = await self.find_by_identity(identity)
            if existing is None:
                raise
            return existing, False

        logger.info("user_created", user_id=user.id, demo=demo is not None)
        return user, True

    async def complete_profile(
        self,
        user_id: UUID,
        display_name: str,
        username: str,
        avatar_type: AvatarType,
        avatar_data: dict[str, Any] | None,
    ) -> User:
        """Replace the provisional profile created on first sign-in."""
        user = await self.get_user(user_id)
        if user.profile_completed:
            raise ConflictError("Profile already completed")

        changes = {
            "display_name": validate_display_name(display_name),
            "username": await self._available_username(username, user_id),
            "avatar_type": avatar_type,
            "avatar_data": avatar_data,
            "profile_completed": True,
        }
        await self._update(user_id, changes)
        return await self.get_user(user_id)

    async def update_profile(self, user_id: UUID, changes: dict[str, Any]) -> User:
        """Partial update of profile fields; absent keys stay unchanged."""
        await self.get_user(user_id)
        if "avatar_type" in changes and changes["avatar_type"] is None:
            del changes["avatar_type"]
        if "display_name" in changes:
            changes["display_name"] = validate_display_name(changes["display_name"] or "")
        if "username" in changes:
            changes["username"] = await self._available_username(changes["username"] or "", user_id)
        if changes:
            await self._update(user_id, changes)
        return await self.get_user(user_id)

    async def _available_username(self, username: str, user_id: UUID) -> str:
        value = validate_username(username)
        if await self.has_username(value, exclude_user_id=user_id):
            raise ConflictError(f"Username '{value}' is already taken")
        return value

    async def _update(self, user_id: UUID, changes: dict[str, Any]) -> None:
        try:
            await self._collection.update_one({"_id": user_id}, set_fields(changes))
        except DuplicateKeyError as e:
            raise ConflictError("Username is already taken") from e
