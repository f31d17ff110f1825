"""Reserved demo accounts that sign in without real code delivery."""

from typing import Literal
from uuid import UUID

from pydantic import BaseModel

DEMO_OTP_CODE = "123456"


class DemoIdentity(BaseModel):
    contact: str
    id: UUID
    name: str
    username: str
    role: Literal["admin", "member"]
    emoji: str
    background_color: str


DEMO_IDENTITIES: dict[str, DemoIdentity] = {
    "demo-admin@example.com": DemoIdentity(
        contact="demo-admin@example.com",
        id=UUID("550e8400-e29b-41d4-a716-446655440001"),
        name="Demo Admin",
        username="demo-admin",
        role="admin",
        emoji="👑",
        background_color="#6366F1",
    ),
    "demo-member@example.com": DemoIdentity(
        contact="demo-member@example.com",
        id=UUID("550e8400-e29b-41d4-a716-446655440002"),
        name="Demo Member",
        username="demo-member",
        role="member",
        emoji="👤",
        background_color="#10B981",
    ),
}


def resolve_identity(contact: str) -> DemoIdentity | None:
    """Return the demo identity for a reserved contact, None for the regular flow."""
    return DEMO_IDENTITIES.get(contact.strip().lower())
