from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field

from spacehub.core.db import TimestampedModel

AvatarType = Literal["emoji", "upload", "default"]


class User(TimestampedModel):
    """Account identified by the email or phone it signs in with."""

    email: str | None = None
    phone: str | None = None
    display_name: str
    username: str  # unique
    avatar_type: AvatarType = "emoji"
    avatar_data: dict[str, Any] | None = None  # {emoji, backgroundColor} or {imageUrl}
    role: Literal["admin", "member"] = "member"
    profile_completed: bool = False  # False until the user picks their own name after first sign-in


class UserSummary(BaseModel):
    """Public author/member info embedded in other resources."""

    id: UUID
    display_name: str
    username: str
    avatar_type: AvatarType
    avatar_data: dict[str, Any] | None = None

    @classmethod
    def from_domain(cls, user: User) -> "UserSummary":
        return cls(
            id=user.id,
            display_name=user.display_name,
            username=user.username,
            avatar_type=user.avatar_type,
            avatar_data=user.avatar_data,
        )


class UserView(UserSummary):
    """User account information (API representation)."""

    email: str | None = Field(None, description="Sign-in email, if any")
    phone: str | None = Field(None, description="Sign-in phone, if any")
    role: Literal["admin", "member"]
    profile_completed: bool

    @classmethod
    def from_domain(cls, user: User) -> "UserView":
        return cls(
            id=user.id,
            display_name=user.display_name,
            username=user.username,
            avatar_type=user.avatar_type,
            avatar_data=user.avatar_data,
            email=user.email,
            phone=user.phone,
            role=user.role,
            profile_completed=user.profile_completed,
        )
