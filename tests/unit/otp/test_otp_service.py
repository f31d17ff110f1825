"""Tests for OTP issuance and verification."""

import asyncio
from datetime import UTC, datetime, timedelta
from uuid import UUID

import pytest

from spacehub.core.core import Core
from spacehub.core.modules.contact.validators import ContactKind
from spacehub.core.modules.otp.demo import DEMO_OTP_CODE
from spacehub.core.modules.otp.models import OtpRecord
from spacehub.core.modules.otp.sender import OtpDeliveryError, OtpSender
from spacehub.core.modules.otp.service import OtpService
from spacehub.core.modules.otp.store import MemoryOtpStore

CONTACT = "test@example.com"


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class RecordingSender(OtpSender):
    def __init__(self, fail: bool = False) -> None:
        self.sent: list[tuple[ContactKind, str, str]] = []
        self.fail = fail

    async def send(self, kind: ContactKind, contact: str, code: str) -> str:
        if self.fail:
            raise OtpDeliveryError("smtp down")
        self.sent.append((kind, contact, code))
        return "OTP sent to your email"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def otp(database, clock, sender):
    return OtpService(database, store=MemoryOtpStore(), clock=clock, sender=sender)


def send(otp: OtpService, contact: str, expose_code: bool = True):
    return asyncio.run(otp.send_otp(contact, expose_code=expose_code))


class TestSendOtp:
    """Tests for send_otp."""

    def test_invalid_contact_fails_without_record(self, otp):
        """Test that an invalid contact returns the format message and stores nothing."""
        result = send(otp, "not-a-contact")
        assert not result.success
        assert result.message.startswith("Invalid contact format")
        assert len(otp.store) == 0

    def test_regular_contact_gets_six_digit_code(self, otp, sender):
        """Test that a regular contact gets a random code that is delivered."""
        result = send(otp, "Test@Example.com")
        assert result.success
        assert not result.is_demo
        assert result.debug_otp is not None
        assert 100000 <= int(result.debug_otp) <= 999999
        assert sender.sent == [(ContactKind.EMAIL, CONTACT, result.debug_otp)]

    def test_code_hidden_unless_exposed(self, otp):
        """Test that the code is not echoed when debug codes are off."""
        assert send(otp, CONTACT, expose_code=False).debug_otp is None

    def test_record_expires_in_ten_minutes(self, otp, clock):
        send(otp, CONTACT)
        record = otp.store.get(CONTACT)
        assert record is not None
        assert record.expires_at == clock.now + timedelta(minutes=10)
        assert record.attempts == 0

    def test_demo_contact_uses_fixed_code_and_skips_delivery(self, otp, sender):
        """Test that demo accounts get the fixed code and are flagged."""
        result = send(otp, "demo-admin@example.com")
        assert result.success
        assert result.is_demo
        assert result.debug_otp == DEMO_OTP_CODE
        assert sender.sent == []

    def test_delivery_failure_discards_record(self, database, clock):
        """Test that a failed delivery reports failure and leaves no live code."""
        otp = OtpService(database, store=MemoryOtpStore(), clock=clock, sender=RecordingSender(fail=True))
        result = send(otp, CONTACT)
        assert not result.success
        assert result.message == "Failed to send OTP. Please try again."
        assert otp.store.get(CONTACT) is None


class TestVerifyOtp:
    """Tests for verify_otp state transitions."""

    def test_correct_code_succeeds_once(self, otp):
        """Test that a code verifies once and then no record remains."""
        code = send(otp, CONTACT).debug_otp

        first = otp.verify_otp(CONTACT, code)
        assert first.success
        assert first.identity is not None
        assert first.identity.email == CONTACT

        second = otp.verify_otp(CONTACT, code)
        assert not second.success
        assert second.message == "No OTP found. Please request a new one."

    def test_wrong_code_reports_remaining_attempts(self, otp):
        code = send(otp, CONTACT).debug_otp
        result = otp.verify_otp(CONTACT, "000000" if code != "000000" else "111111")
        assert not result.success
        assert result.message == "Invalid OTP. 2 attempts remaining."

    def test_three_wrong_codes_lock_record(self, otp):
        """Test that the third failure reports zero remaining and the next attempt is locked out."""
        code = send(otp, CONTACT).debug_otp
        wrong = "000000" if code != "000000" else "111111"

        messages = [otp.verify_otp(CONTACT, wrong).message for _ in range(3)]
        assert messages == [
            "Invalid OTP. 2 attempts remaining.",
            "Invalid OTP. 1 attempts remaining.",
            "Invalid OTP. 0 attempts remaining.",
        ]

        locked = otp.verify_otp(CONTACT, code)
        assert not locked.success
        assert locked.message == "Too many failed attempts. Please request a new OTP."
        assert otp.store.get(CONTACT) is None

    def test_expired_code_rejected(self, otp, clock):
        """Test that verification after ten minutes fails and drops the record."""
        code = send(otp, CONTACT).debug_otp
        clock.advance(minutes=10, seconds=1)

        result = otp.verify_otp(CONTACT, code)
        assert result.message == "OTP has expired. Please request a new one."
        assert otp.store.get(CONTACT) is None

    def test_reissue_invalidates_previous_code(self, otp):
        """Test that a new issuance replaces the stored code."""
        send(otp, CONTACT)
        second = send(otp, CONTACT).debug_otp
        record = otp.store.get(CONTACT)
        assert record is not None
        assert record.code == second
        assert otp.verify_otp(CONTACT, second).success

    def test_demo_contact_accepts_any_six_digits(self, otp):
        """Test that demo accounts verify with any well-formed code and a stable identity."""
        first = otp.verify_otp("demo-member@example.com", "987654")
        second = otp.verify_otp("DEMO-MEMBER@example.com", "000001")
        assert first.success and second.success
        assert first.identity == second.identity
        assert first.identity.id == UUID("550e8400-e29b-41d4-a716-446655440002")
        assert first.identity.role == "member"

    def test_demo_contact_rejects_malformed_code(self, otp):
        result = otp.verify_otp("demo-admin@example.com", "12345")
        assert not result.success
        assert result.message == "OTP must be 6 digits"

    def test_phone_identity_is_minted(self, otp):
        code = send(otp, "14155550123").debug_otp
        result = otp.verify_otp("+1 415 555 0123", code)
        assert result.success
        assert result.identity.phone == "+14155550123"
        assert result.identity.email is None


class TestSweep:
    def test_sweep_drops_expired_records(self, otp, clock):
        """Test that the periodic sweep removes records nobody tried to verify."""
        send(otp, CONTACT)
        clock.advance(minutes=5)
        assert otp.sweep_expired() == 0

        clock.advance(minutes=6)
        assert otp.sweep_expired() == 1
        assert otp.store.get(CONTACT) is None

    def test_sweep_task_runs_on_interval_until_stopped(self, config, database):
        """Test that on_start schedules the sweep loop and on_stop cancels it."""
        core = Core(config.model_copy(update={"otp_sweep_interval_seconds": 0.01}), database=database)
        otp = core.services.otp
        expired = OtpRecord(contact=CONTACT, code="111111", expires_at=datetime.now(UTC) - timedelta(seconds=1))

        async def run() -> tuple[int, asyncio.Task[None] | None]:
            await otp.on_start()
            task = otp._sweep_task
            otp.store.set(expired)
            await asyncio.sleep(0.1)
            remaining = len(otp.store)
            await otp.on_stop()
            return remaining, task

        remaining, task = asyncio.run(run())
        assert remaining == 0
        assert task is not None
        assert task.done()
        assert otp._sweep_task is None
