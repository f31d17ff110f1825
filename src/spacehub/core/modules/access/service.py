from typing import Any, Literal, Protocol
from uuid import UUID

from pymongo.asynchronous.database import AsyncDatabase

from spacehub.core.core import Service
from spacehub.core.modules.otp.models import Identity
from spacehub.core.modules.session.models import AuthToken
from spacehub.errors import AccessDeniedError


class Authored(Protocol):
    author_id: UUID


class AccessService(Service):
    """Per-request authorization checks.

    Every predicate is a single lookup against `space_members`; nothing is
    cached, so a new membership takes effect on the next request.
    """

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._members = database.get_collection("space_members")

    async def ensure_authenticated(self, auth_token: AuthToken) -> Identity:
        """Ensure the request carries a valid session token."""
        return self.core.services.session.decode_token(auth_token)

    async def is_member(self, space_id: UUID, user_id: UUID) -> bool:
        return await self._members.find_one({"space_id": space_id, "user_id": user_id}) is not None

    async def is_admin(self, space_id: UUID, user_id: UUID) -> bool:
        return await self._members.find_one({"space_id": space_id, "user_id": user_id, "role": "admin"}) is not None

    @staticmethod
    def is_author(resource: Authored, user_id: UUID) -> bool:
        return resource.author_id == user_id

    async def ensure_space_member(self, auth_token: AuthToken, space_id: UUID) -> Identity:
        """Ensure the authenticated user is a member of the specified space."""
        identity = await self.ensure_authenticated(auth_token)
        if not await self.is_member(space_id, identity.id):
            raise AccessDeniedError("Not a member of this space")
        return identity

    async def ensure_space_admin(self, auth_token: AuthToken, space_id: UUID) -> Identity:
        """Ensure the authenticated user administers the specified space."""
        identity = await self.ensure_authenticated(auth_token)
        if not await self.is_admin(space_id, identity.id):
            raise AccessDeniedError("Forbidden - Admin access required")
        return identity

    def ensure_author(
        self, resource: Authored, identity: Identity, action: Literal["edit", "delete"], kind: str
    ) -> None:
        if not self.is_author(resource, identity.id):
            raise AccessDeniedError(f"Only the author can {action} this {kind}")
