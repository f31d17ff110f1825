"""One-time passcode records and results."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

OTP_TTL_SECONDS = 10 * 60
OTP_MAX_ATTEMPTS = 3


class OtpRecord(BaseModel):
    """Live code for a contact. At most one per contact; reissuing overwrites."""

    contact: str
    code: str
    expires_at: datetime
    attempts: int = 0


class Identity(BaseModel):
    """Authenticated caller as carried in session token claims."""

    id: UUID
    email: str | None = None
    phone: str | None = None
    name: str
    role: Literal["admin", "member"] = "member"


class OtpSendResult(BaseModel):
    success: bool
    message: str
    is_demo: bool = False
    debug_otp: str | None = Field(None, description="Generated code, only set when debug codes are exposed")


class OtpVerification(BaseModel):
    success: bool
    message: str
    identity: Identity | None = None
    is_demo: bool = False
