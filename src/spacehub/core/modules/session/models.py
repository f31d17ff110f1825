"""Session token models."""

from typing import NewType

from pydantic import BaseModel

from spacehub.core.modules.otp.models import Identity
from spacehub.core.modules.user.models import User

AuthToken = NewType("AuthToken", str)

TOKEN_ALGORITHM = "HS256"


class SignInResult(BaseModel):
    """Outcome of exchanging a contact + code for a session."""

    success: bool
    message: str
    identity: Identity | None = None
    user: User | None = None
    token: str | None = None
    is_new_user: bool = False
