from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any
from uuid import UUID

from pymongo.asynchronous.database import AsyncDatabase

from spacehub.config import Config
from spacehub.core.core import Core
from spacehub.core.modules.lesson.models import LessonProgress, LessonView, ProgressResult
from spacehub.core.modules.message.models import Attachment, MessageType, MessageView, ReactionView
from spacehub.core.modules.note.models import NoteView, PublishStatus
from spacehub.core.modules.otp.models import Identity, OtpSendResult
from spacehub.core.modules.session.models import AuthToken, SignInResult
from spacehub.core.modules.space.models import JoinResult, MemberRole, MemberView, Space, SpaceWithMembership
from spacehub.core.modules.user.models import AvatarType, UserView
from spacehub.core.pagination import CursorPage
from spacehub.errors import AccessDeniedError


class App:
    """Facade for all application operations, validates permissions before delegating to Core."""

    def __init__(self, config: Config, database: AsyncDatabase[dict[str, Any]] | None = None) -> None:
        self._core = Core(config, database)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    @property
    def config(self) -> Config:
        return self._core.config

    # --- auth ---

    def is_auth_token_valid(self, auth_token: AuthToken) -> bool:
        return self._core.services.session.is_auth_token_valid(auth_token)

    async def send_otp(self, contact: str) -> OtpSendResult:
        """Issue a one-time code; the code is echoed back only in debug configurations."""
        return await self._core.services.otp.send_otp(contact, expose_code=self._core.config.expose_otp_codes)

    async def verify_otp(self, contact: str, otp: str) -> SignInResult:
        """Exchange a contact + code for a session token."""
        return await self._core.services.session.sign_in(contact, otp)

    async def complete_profile(
        self,
        auth_token: AuthToken,
        display_name: str,
        username: str,
        avatar_type: AvatarType,
        avatar_data: dict[str, Any] | None,
    ) -> UserView:
        identity = await self._core.services.access.ensure_authenticated(auth_token)
        user = await self._core.services.user.complete_profile(
            identity.id, display_name, username, avatar_type, avatar_data
        )
        return UserView.from_domain(user)

    async def logout(self, auth_token: AuthToken) -> None:
        """Sessions are stateless; this only checks the token before the cookie is dropped."""
        await self._core.services.access.ensure_authenticated(auth_token)

    async def get_current_user(self, auth_token: AuthToken) -> UserView:
        identity = await self._core.services.access.ensure_authenticated(auth_token)
        return UserView.from_domain(await self._core.services.user.get_user(identity.id))

    # --- users ---

    async def get_user(self, auth_token: AuthToken, user_id: UUID) -> UserView:
        await self._core.services.access.ensure_authenticated(auth_token)
        return UserView.from_domain(await self._core.services.user.get_user(user_id))

    async def update_user(self, auth_token: AuthToken, user_id: UUID, changes: dict[str, Any]) -> UserView:
        """Update own profile (self only)."""
        identity = await self._core.services.access.ensure_authenticated(auth_token)
        if identity.id != user_id:
            raise AccessDeniedError("Forbidden")
        return UserView.from_domain(await self._core.services.user.update_profile(user_id, changes))

    # --- spaces ---

    async def get_spaces(self, auth_token: AuthToken) -> list[SpaceWithMembership]:
        """Get spaces where current user is a member."""
        identity = await self._core.services.access.ensure_authenticated(auth_token)
        return await self._core.services.space.get_spaces_for_user(identity.id)

    async def create_space(self, auth_token: AuthToken, data: dict[str, Any]) -> Space:
        """Create new space with current user as admin."""
        identity = await self._core.services.access.ensure_authenticated(auth_token)
        return await self._core.services.space.create_space(identity.id, data)

    async def get_space(self, auth_token: AuthToken, space_id: UUID) -> SpaceWithMembership:
        identity = await self._core.services.access.ensure_space_member(auth_token, space_id)
        return await self._core.services.space.get_space_for_user(space_id, identity.id)

    async def update_space(self, auth_token: AuthToken, space_id: UUID, changes: dict[str, Any]) -> Space:
        await self._core.services.access.ensure_space_admin(auth_token, space_id)
        return await self._core.services.space.update_space(space_id, changes)

    async def delete_space(self, auth_token: AuthToken, space_id: UUID) -> None:
        await self._core.services.access.ensure_space_admin(auth_token, space_id)
        await self._core.services.space.delete_space(space_id)

    async def join_space(self, auth_token: AuthToken, invite_code: str) -> JoinResult:
        identity = await self._core.services.access.ensure_authenticated(auth_token)
        return await self._core.services.space.join_by_invite_code(invite_code, identity.id)

    async def get_members(self, auth_token: AuthToken, space_id: UUID) -> list[MemberView]:
        await self._core.services.access.ensure_space_member(auth_token, space_id)
        return await self._core.services.space.get_members(space_id)

    async def get_member_role(self, auth_token: AuthToken, space_id: UUID, user_id: UUID) -> MemberRole:
        await self._core.services.access.ensure_space_member(auth_token, space_id)
        membership = await self._core.services.space.get_member(space_id, user_id)
        return MemberRole(
            role=membership.role, notification_level=membership.notification_level, joined_at=membership.joined_at
        )

    # --- messages ---

    async def get_messages(
        self,
        auth_token: AuthToken,
        space_id: UUID,
        limit: int,
        before: datetime | None,
        before_id: UUID | None = None,
    ) -> CursorPage[MessageView]:
        await self._core.services.access.ensure_space_member(auth_token, space_id)
        return await self._core.services.message.get_messages(space_id, limit, before, before_id)

    async def create_message(
        self,
        auth_token: AuthToken,
        space_id: UUID,
        content: str | None,
        message_type: MessageType,
        attachments: list[Attachment] | None,
        parent_message_id: UUID | None,
    ) -> MessageView:
        identity = await self._core.services.access.ensure_space_member(auth_token, space_id)
        return await self._core.services.message.create_message(
            space_id, identity.id, content, message_type, attachments, parent_message_id
        )

    async def get_reactions(self, auth_token: AuthToken, message_id: UUID) -> list[ReactionView]:
        await self._ensure_message_access(auth_token, message_id)
        return await self._core.services.message.get_reactions(message_id)

    async def add_reaction(self, auth_token: AuthToken, message_id: UUID, emoji: str) -> ReactionView:
        identity = await self._ensure_message_access(auth_token, message_id)
        return await self._core.services.message.add_reaction(message_id, identity.id, emoji)

    async def remove_reaction(self, auth_token: AuthToken, message_id: UUID, emoji: str) -> None:
        identity = await self._ensure_message_access(auth_token, message_id)
        await self._core.services.message.remove_reaction(message_id, identity.id, emoji)

    # --- notes ---

    async def get_notes(self, auth_token: AuthToken, space_id: UUID) -> list[NoteView]:
        await self._core.services.access.ensure_space_member(auth_token, space_id)
        return await self._core.services.note.list_notes(space_id)

    async def create_note(
        self, auth_token: AuthToken, space_id: UUID, title: str, blocks: list[dict[str, Any]], status: PublishStatus
    ) -> NoteView:
        identity = await self._core.services.access.ensure_space_member(auth_token, space_id)
        return await self._core.services.note.create_note(space_id, identity.id, title, blocks, status)

    async def get_note(self, auth_token: AuthToken, note_id: UUID) -> NoteView:
        note = await self._core.services.note.get_note_view(note_id)
        await self._core.services.access.ensure_space_member(auth_token, note.space_id)
        return note

    async def update_note(self, auth_token: AuthToken, note_id: UUID, changes: dict[str, Any]) -> NoteView:
        note = await self._core.services.note.get_note(note_id)
        identity = await self._core.services.access.ensure_space_member(auth_token, note.space_id)
        self._core.services.access.ensure_author(note, identity, "edit", "note")
        return await self._core.services.note.update_note(note_id, changes)

    async def delete_note(self, auth_token: AuthToken, note_id: UUID) -> None:
        note = await self._core.services.note.get_note(note_id)
        identity = await self._core.services.access.ensure_space_member(auth_token, note.space_id)
        self._core.services.access.ensure_author(note, identity, "delete", "note")
        await self._core.services.note.delete_note(note_id)

    # --- lessons ---

    async def get_lessons(self, auth_token: AuthToken, space_id: UUID) -> list[LessonView]:
        await self._core.services.access.ensure_space_member(auth_token, space_id)
        return await self._core.services.lesson.list_lessons(space_id)

    async def create_lesson(
        self,
        auth_token: AuthToken,
        space_id: UUID,
        title: str,
        topics: list[dict[str, Any]],
        description: str | None,
        status: PublishStatus,
    ) -> LessonView:
        identity = await self._core.services.access.ensure_space_member(auth_token, space_id)
        return await self._core.services.lesson.create_lesson(space_id, identity.id, title, topics, description, status)

    async def get_lesson(self, auth_token: AuthToken, lesson_id: UUID) -> LessonView:
        lesson = await self._core.services.lesson.get_lesson_view(lesson_id)
        await self._core.services.access.ensure_space_member(auth_token, lesson.space_id)
        return lesson

    async def update_lesson(self, auth_token: AuthToken, lesson_id: UUID, changes: dict[str, Any]) -> LessonView:
        lesson = await self._core.services.lesson.get_lesson(lesson_id)
        identity = await self._core.services.access.ensure_space_member(auth_token, lesson.space_id)
        self._core.services.access.ensure_author(lesson, identity, "edit", "lesson")
        return await self._core.services.lesson.update_lesson(lesson_id, changes)

    async def delete_lesson(self, auth_token: AuthToken, lesson_id: UUID) -> None:
        lesson = await self._core.services.lesson.get_lesson(lesson_id)
        identity = await self._core.services.access.ensure_space_member(auth_token, lesson.space_id)
        self._core.services.access.ensure_author(lesson, identity, "delete", "lesson")
        await self._core.services.lesson.delete_lesson(lesson_id)

    async def get_lesson_progress(self, auth_token: AuthToken, lesson_id: UUID) -> LessonProgress:
        lesson = await self._core.services.lesson.get_lesson(lesson_id)
        identity = await self._core.services.access.ensure_space_member(auth_token, lesson.space_id)
        return await self._core.services.lesson.get_progress(lesson_id, identity.id)

    async def save_lesson_progress(
        self, auth_token: AuthToken, lesson_id: UUID, completed_topics: list[int]
    ) -> ProgressResult:
        lesson = await self._core.services.lesson.get_lesson(lesson_id)
        identity = await self._core.services.access.ensure_space_member(auth_token, lesson.space_id)
        return await self._core.services.lesson.save_progress(lesson_id, identity.id, completed_topics)

    async def _ensure_message_access(self, auth_token: AuthToken, message_id: UUID) -> Identity:
        message = await self._core.services.message.get_message(message_id)
        return await self._core.services.access.ensure_space_member(auth_token, message.space_id)
