from datetime import timedelta
from typing import Any
from uuid import UUID

import jwt
import structlog

from spacehub.core.core import Service
from spacehub.core.modules.otp.models import Identity
from spacehub.core.modules.session.models import TOKEN_ALGORITHM, AuthToken, SignInResult
from spacehub.core.modules.user.models import User
from spacehub.errors import AuthenticationError
from spacehub.utils import is_otp_code, now

logger = structlog.get_logger(__name__)


class SessionService(Service):
    """Turns verified codes into signed, stateless session tokens.

    Token validity depends only on signature and expiry; nothing is stored
    server-side, so logout is a client-side cookie removal.
    """

    async def sign_in(self, contact: str | None, otp: str | None) -> SignInResult:
        if not contact or not otp:
            return SignInResult(success=False, message="Contact and OTP are required")
        if not is_otp_code(otp):
            return SignInResult(success=False, message="OTP must be 6 digits")

        verification = self.core.services.otp.verify_otp(contact, otp)
        if not verification.success or verification.identity is None:
            return SignInResult(success=False, message=verification.message)

        user, created = await self.core.services.user.resolve_user(verification.identity)
        identity = identity_for(user)
        logger.info("signed_in", user_id=user.id, new_user=created)
        return SignInResult(
            success=True,
            message=verification.message,
            identity=identity,
            user=user,
            token=self.issue_token(identity),
            is_new_user=created,
        )

    async def authorize(self, contact: str | None, otp: str | None) -> Identity | None:
        """Credential check: the persisted identity for a valid contact + code, else None."""
        result = await self.sign_in(contact, otp)
        return result.identity

    def issue_token(self, identity: Identity) -> AuthToken:
        config = self.core.config
        issued_at = now()
        payload: dict[str, Any] = {
            "sub": str(identity.id),
            "email": identity.email,
            "phone": identity.phone,
            "name": identity.name,
            "role": identity.role,
            "iat": issued_at,
            "exp": issued_at + timedelta(days=config.session_max_age_days),
        }
        return AuthToken(jwt.encode(payload, config.session_secret_key, algorithm=TOKEN_ALGORITHM))

    def decode_token(self, auth_token: AuthToken) -> Identity:
        try:
            claims = jwt.decode(
                auth_token,
                self.core.config.session_secret_key,
                algorithms=[TOKEN_ALGORITHM],
                options={"require": ["sub", "exp"]},
            )
            return Identity(
                id=UUID(claims["sub"]),
                email=claims.get("email"),
                phone=claims.get("phone"),
                name=claims.get("name") or "",
                role=claims.get("role") or "member",
            )
        except (jwt.InvalidTokenError, ValueError) as e:
            raise AuthenticationError("Invalid or expired session") from e

    def is_auth_token_valid(self, auth_token: AuthToken) -> bool:
        try:
            self.decode_token(auth_token)
        except AuthenticationError:
            return False
        return True


def identity_for(user: User) -> Identity:
    return Identity(id=user.id, email=user.email, phone=user.phone, name=user.display_name, role=user.role)
