import asyncio
import contextlib
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any
from uuid import uuid4

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from spacehub.core.core import Service
from spacehub.core.modules.contact.validators import ContactKind, validate_contact
from spacehub.core.modules.otp.demo import DEMO_OTP_CODE, DemoIdentity, resolve_identity
from spacehub.core.modules.otp.models import (
    OTP_MAX_ATTEMPTS,
    OTP_TTL_SECONDS,
    Identity,
    OtpRecord,
    OtpSendResult,
    OtpVerification,
)
from spacehub.core.modules.otp.sender import ConsoleOtpSender, OtpDeliveryError, OtpSender, build_sender
from spacehub.core.modules.otp.store import MemoryOtpStore, OtpStore
from spacehub.utils import is_otp_code, now

logger = structlog.get_logger(__name__)


class OtpService(Service):
    """Issues and verifies one-time sign-in codes.

    Per contact: NONE -> ISSUED -> VERIFIED | EXPIRED | LOCKED, where every
    terminal state removes the record. Reserved demo contacts always use the
    fixed code and verify with any well-formed code.
    """

    def __init__(
        self,
        database: AsyncDatabase[dict[str, Any]],
        store: OtpStore | None = None,
        clock: Callable[[], datetime] = now,
        sender: OtpSender | None = None,
    ) -> None:
        super().__init__(database)
        self.store = store if store is not None else MemoryOtpStore()
        self._clock = clock
        self._sender = sender
        self._sweep_task: asyncio.Task[None] | None = None

    async def on_start(self) -> None:
        config = self.core.config
        if self._sender is None:
            self._sender = build_sender(config)
        self._sweep_task = asyncio.create_task(self._sweep_loop(config.otp_sweep_interval_seconds))
        logger.debug("otp_service_started", mode=config.otp_mode, sweep_interval=config.otp_sweep_interval_seconds)

    async def on_stop(self) -> None:
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None

    @property
    def sender(self) -> OtpSender:
        if self._sender is None:
            self._sender = ConsoleOtpSender()
        return self._sender

    def generate_code(self, demo: DemoIdentity | None = None) -> str:
        if demo is not None:
            return DEMO_OTP_CODE
        return str(100000 + secrets.randbelow(900000))

    def issue_otp(self, contact: str, demo: DemoIdentity | None = None) -> OtpRecord:
        """Store a fresh code for an already-normalized contact, replacing any previous one."""
        record = OtpRecord(
            contact=contact,
            code=self.generate_code(demo),
            expires_at=self._clock() + timedelta(seconds=OTP_TTL_SECONDS),
        )
        self.store.set(record)
        logger.debug("otp_issued", contact=contact, expires_at=record.expires_at, demo=demo is not None)
        return record

    async def send_otp(self, contact: str, expose_code: bool = False) -> OtpSendResult:
        check = validate_contact(contact)
        if not check.valid or check.kind is None or check.normalized is None:
            return OtpSendResult(success=False, message=check.message or "Invalid contact")

        demo = resolve_identity(check.normalized)
        record = self.issue_otp(check.normalized, demo)

        if demo is not None:
            message = "Demo account detected! Use any 6-digit code to sign in."
        else:
            try:
                message = await self.sender.send(check.kind, record.contact, record.code)
            except OtpDeliveryError:
                logger.exception("otp_delivery_failed", contact=record.contact, kind=check.kind)
                self.store.delete(record.contact)
                return OtpSendResult(success=False, message="Failed to send OTP. Please try again.")

        return OtpSendResult(
            success=True,
            message=message,
            is_demo=demo is not None,
            debug_otp=record.code if expose_code else None,
        )

    def verify_otp(self, contact: str, code: str) -> OtpVerification:
        check = validate_contact(contact)
        if not check.valid or check.kind is None or check.normalized is None:
            return OtpVerification(success=False, message=check.message or "Invalid contact")
        key = check.normalized

        demo = resolve_identity(key)
        if demo is not None:
            if not is_otp_code(code):
                return OtpVerification(success=False, message="OTP must be 6 digits")
            self.store.delete(key)
            logger.info("otp_demo_verified", contact=key)
            return OtpVerification(
                success=True,
                message="Demo account verified successfully!",
                identity=Identity(id=demo.id, email=demo.contact, name=demo.name, role=demo.role),
                is_demo=True,
            )

        record = self.store.get(key)
        if record is None:
            return OtpVerification(success=False, message="No OTP found. Please request a new one.")

        if self._clock() > record.expires_at:
            self.store.delete(key)
            return OtpVerification(success=False, message="OTP has expired. Please request a new one.")

        if record.attempts >= OTP_MAX_ATTEMPTS:
            self.store.delete(key)
            return OtpVerification(success=False, message="Too many failed attempts. Please request a new OTP.")

        if not secrets.compare_digest(record.code, code):
            record.attempts += 1
            self.store.set(record)
            remaining = OTP_MAX_ATTEMPTS - record.attempts
            logger.info("otp_verification_failed", contact=key, attempts=record.attempts)
            return OtpVerification(success=False, message=f"Invalid OTP. {remaining} attempts remaining.")

        self.store.delete(key)
        logger.info("otp_verified", contact=key)
        return OtpVerification(
            success=True,
            message="OTP verified successfully",
            identity=_mint_identity(check.kind, key),
        )

    def sweep_expired(self) -> int:
        """Drop expired records regardless of verification traffic."""
        expired = self.store.sweep(self._clock())
        if expired:
            logger.debug("otp_sweep", removed=len(expired))
        return len(expired)

    async def _sweep_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.sweep_expired()


def _mint_identity(kind: ContactKind, contact: str) -> Identity:
    if kind == ContactKind.EMAIL:
        return Identity(id=uuid4(), email=contact, name=contact.split("@")[0])
    return Identity(id=uuid4(), phone=contact, name=contact)
