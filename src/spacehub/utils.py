import re
import secrets
from datetime import UTC, datetime

OTP_RE = re.compile(r"^\d{6}$")
USERNAME_RE = re.compile(r"^[a-z0-9_][a-z0-9_.-]{1,31}$")


def is_otp_code(value: str) -> bool:
    return bool(OTP_RE.fullmatch(value))


def is_username(value: str) -> bool:
    return bool(USERNAME_RE.fullmatch(value))


def generate_invite_code() -> str:
    """8 URL-safe characters."""
    return secrets.token_urlsafe(6)


def now() -> datetime:
    return datetime.now(UTC)
