"""OTP delivery over email (SMTP) and SMS (Twilio REST API)."""

import asyncio
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage

import httpx
import structlog

from spacehub.config import Config
from spacehub.core.modules.contact.validators import ContactKind
from spacehub.core.modules.otp.models import OTP_TTL_SECONDS

logger = structlog.get_logger(__name__)

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"


class OtpDeliveryError(Exception):
    """Raised when a code could not be handed to the delivery channel."""


class OtpSender(ABC):
    @abstractmethod
    async def send(self, kind: ContactKind, contact: str, code: str) -> str:
        """Deliver the code and return a user-facing confirmation message."""


class ConsoleOtpSender(OtpSender):
    """Demo delivery: writes the code to the server log."""

    async def send(self, kind: ContactKind, contact: str, code: str) -> str:
        logger.info("otp_demo_delivery", contact=contact, kind=kind, code=code)
        return "OTP sent successfully! (Demo mode - check server logs for the code)"


class EmailOtpSender(OtpSender):
    def __init__(self, config: Config) -> None:
        self._config = config

    async def send(self, kind: ContactKind, contact: str, code: str) -> str:
        await asyncio.to_thread(self._send_sync, contact, code)
        return "OTP sent to your email"

    def _send_sync(self, email: str, code: str) -> None:
        config = self._config
        msg = EmailMessage()
        msg["Subject"] = "Your Spaces login code"
        msg["From"] = config.smtp_from
        msg["To"] = email
        msg.set_content(
            f"Your verification code for Spaces is: {code}\n\n"
            f"This code will expire in {OTP_TTL_SECONDS // 60} minutes.\n"
            "If you didn't request this code, please ignore this email."
        )

        try:
            with smtplib.SMTP(config.smtp_host or "", config.smtp_port, timeout=10) as smtp:
                if config.smtp_use_tls:
                    smtp.starttls()
                if config.smtp_user:
                    smtp.login(config.smtp_user, config.smtp_password or "")
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise OtpDeliveryError(f"Email delivery failed: {e}") from e


class SmsOtpSender(OtpSender):
    def __init__(self, config: Config, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._client = client

    async def send(self, kind: ContactKind, contact: str, code: str) -> str:
        config = self._config
        url = TWILIO_MESSAGES_URL.format(sid=config.twilio_account_sid)
        data = {
            "To": contact,
            "From": config.twilio_from_number or "",
            "Body": f"Your Spaces verification code is: {code}. This code expires in {OTP_TTL_SECONDS // 60} minutes.",
        }
        auth = (config.twilio_account_sid or "", config.twilio_auth_token or "")

        try:
            if self._client is not None:
                response = await self._client.post(url, data=data, auth=auth)
            else:
                async with httpx.AsyncClient(timeout=10) as client:
                    response = await client.post(url, data=data, auth=auth)
        except httpx.HTTPError as e:
            raise OtpDeliveryError(f"SMS delivery failed: {e}") from e

        if response.status_code >= 400:
            raise OtpDeliveryError(f"SMS delivery failed: HTTP {response.status_code}")
        return "OTP sent to your phone"


class RoutingOtpSender(OtpSender):
    """Dispatches by contact kind; a channel left as None is treated as unconfigured."""

    def __init__(self, email: OtpSender | None, sms: OtpSender | None) -> None:
        self._channels: dict[ContactKind, OtpSender | None] = {ContactKind.EMAIL: email, ContactKind.PHONE: sms}

    async def send(self, kind: ContactKind, contact: str, code: str) -> str:
        channel = self._channels.get(kind)
        if channel is None:
            raise OtpDeliveryError(f"No delivery channel configured for {kind}")
        return await channel.send(kind, contact, code)


def build_sender(config: Config) -> OtpSender:
    if config.otp_mode == "demo":
        return ConsoleOtpSender()
    return RoutingOtpSender(
        email=EmailOtpSender(config) if config.smtp_configured else None,
        sms=SmsOtpSender(config) if config.twilio_configured else None,
    )
