import re
from enum import StrEnum

from pydantic import BaseModel

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\+\d{10,15}$")
DIGITS_RE = re.compile(r"^\d{10,15}$")

INVALID_CONTACT_MESSAGE = "Invalid contact format. Use email or phone number with country code (e.g., +1234567890)"


class ContactKind(StrEnum):
    EMAIL = "email"
    PHONE = "phone"


class ContactCheck(BaseModel):
    """Outcome of validating a sign-in identifier."""

    valid: bool
    kind: ContactKind | None = None
    normalized: str | None = None
    message: str | None = None


def validate_contact(contact: str) -> ContactCheck:
    """Classify an identifier as email or phone and normalize it.

    Emails are lowercased. Phones have whitespace removed; a bare 10-15 digit
    number gets a leading `+`.
    """
    value = contact.strip()

    if EMAIL_RE.fullmatch(value):
        return ContactCheck(valid=True, kind=ContactKind.EMAIL, normalized=value.lower())

    phone = re.sub(r"\s+", "", value)
    if DIGITS_RE.fullmatch(phone):
        phone = f"+{phone}"
    if PHONE_RE.fullmatch(phone):
        return ContactCheck(valid=True, kind=ContactKind.PHONE, normalized=phone)

    return ContactCheck(valid=False, message=INVALID_CONTACT_MESSAGE)
