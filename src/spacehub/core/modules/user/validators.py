import re
import secrets

from spacehub.errors import ValidationError
from spacehub.utils import is_username


def validate_username(username: str) -> str:
    """Validate and normalize a username.

    Requirements:
    - 2 to 32 characters
    - Lowercase letters, digits, underscore, dot or hyphen
    - Must not start with a dot or hyphen

    Raises:
        ValidationError: If the username doesn't meet requirements
    """
    value = username.strip().lower()
    if not is_username(value):
        raise ValidationError(
            "Username must be 2-32 characters of lowercase letters, digits, '_', '.' or '-', "
            "and must not start with '.' or '-'"
        )
    return value


def validate_display_name(display_name: str) -> str:
    value = display_name.strip()
    if not value:
        raise ValidationError("Display name cannot be empty")
    if len(value) > 64:
        raise ValidationError("Display name must be at most 64 characters")
    return value


def provisional_username(contact: str) -> str:
    """Derive a unique-enough username from a contact for accounts created on first sign-in."""
    base = contact.split("@")[0] if "@" in contact else "user"
    base = re.sub(r"[^a-z0-9_]", "_", base.lower()).strip("_")[:20] or "user"
    return f"{base}_{secrets.token_hex(3)}"
