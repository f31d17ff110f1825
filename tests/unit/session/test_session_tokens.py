"""Tests for session tokens and the credential provider."""

import asyncio
from datetime import timedelta
from uuid import UUID, uuid4

import jwt
import pytest

from spacehub.core.core import Core
from spacehub.core.modules.otp.models import Identity
from spacehub.core.modules.session.models import AuthToken
from spacehub.errors import AuthenticationError
from spacehub.utils import now


@pytest.fixture
def core(config, database):
    return Core(config, database=database)


@pytest.fixture
def session(core):
    return core.services.session


class TestTokens:
    """Tests for issuing and decoding session tokens."""

    def test_round_trip_preserves_claims(self, session):
        identity = Identity(id=uuid4(), email="a@example.com", name="a", role="member")
        assert session.decode_token(session.issue_token(identity)) == identity

    def test_token_expires_after_configured_days(self, session, config):
        token = session.issue_token(Identity(id=uuid4(), phone="+14155550123", name="+14155550123"))
        claims = jwt.decode(token, config.session_secret_key, algorithms=["HS256"])
        assert claims["exp"] - claims["iat"] == config.session_max_age_days * 24 * 60 * 60

    def test_tampered_token_rejected(self, session):
        """Test that a token signed with another key is not accepted."""
        forged = jwt.encode({"sub": str(uuid4()), "exp": now() + timedelta(days=1)}, "other-key-" * 4, algorithm="HS256")
        with pytest.raises(AuthenticationError, match="Invalid or expired session"):
            session.decode_token(AuthToken(forged))
        assert not session.is_auth_token_valid(AuthToken(forged))

    def test_expired_token_rejected(self, session, config):
        expired = jwt.encode(
            {"sub": str(uuid4()), "exp": now() - timedelta(seconds=1)}, config.session_secret_key, algorithm="HS256"
        )
        with pytest.raises(AuthenticationError):
            session.decode_token(AuthToken(expired))

    def test_garbage_rejected(self, session):
        assert not session.is_auth_token_valid(AuthToken("not-a-token"))


class TestAuthorize:
    """Tests for exchanging contact + code for an identity."""

    @pytest.mark.parametrize(("contact", "otp"), [("", "123456"), ("a@example.com", ""), ("a@example.com", "12ab56")])
    def test_missing_or_malformed_input_returns_none(self, session, contact, otp):
        assert asyncio.run(session.authorize(contact, otp)) is None

    def test_wrong_code_returns_none(self, core, session):
        asyncio.run(core.services.otp.send_otp("a@example.com"))
        code = core.services.otp.store.get("a@example.com").code
        wrong = "100000" if code != "100000" else "100001"
        assert asyncio.run(session.authorize("a@example.com", wrong)) is None

    def test_demo_account_resolves_to_fixed_persisted_user(self, session, database):
        """Test that demo sign-in creates the user once with its fixed id."""
        first = asyncio.run(session.sign_in("demo-admin@example.com", "111111"))
        second = asyncio.run(session.sign_in("demo-admin@example.com", "222222"))

        assert first.success and second.success
        assert first.is_new_user
        assert not second.is_new_user
        assert first.identity.id == second.identity.id == UUID("550e8400-e29b-41d4-a716-446655440001")
        assert first.identity.role == "admin"
        assert len(database["users"].docs) == 1

    def test_regular_contact_gets_stable_provisional_user(self, core, session):
        """Test that a first sign-in persists a provisional profile that later sign-ins reuse."""
        identities = []
        for _ in range(2):
            asyncio.run(core.services.otp.send_otp("new@example.com"))
            code = core.services.otp.store.get("new@example.com").code
            identities.append(asyncio.run(session.authorize("new@example.com", code)))

        assert identities[0] is not None
        assert identities[0].id == identities[1].id
        user = asyncio.run(core.services.user.get_user(identities[0].id))
        assert not user.profile_completed
        assert user.email == "new@example.com"
