"""Tests for OTP delivery channels."""

import asyncio

import httpx
import pytest

from spacehub.core.modules.contact.validators import ContactKind
from spacehub.core.modules.otp.sender import (
    ConsoleOtpSender,
    OtpDeliveryError,
    RoutingOtpSender,
    SmsOtpSender,
    build_sender,
)


@pytest.fixture
def twilio_config(config):
    return config.model_copy(
        update={
            "otp_mode": "delivery",
            "twilio_account_sid": "AC123",
            "twilio_auth_token": "secret",
            "twilio_from_number": "+15550000000",
        }
    )


class TestSmsOtpSender:
    """Tests for Twilio SMS delivery."""

    def test_posts_message_to_twilio(self, twilio_config):
        """Test that the code is posted as a form to the account's Messages endpoint."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(201, json={"sid": "SM1"})

        async def run() -> str:
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                return await SmsOtpSender(twilio_config, client=client).send(ContactKind.PHONE, "+14155550123", "123123")

        assert asyncio.run(run()) == "OTP sent to your phone"
        assert requests[0].url.path == "/2010-04-01/Accounts/AC123/Messages.json"
        body = requests[0].content.decode()
        assert "To=%2B14155550123" in body
        assert "123123" in body

    def test_error_status_raises_delivery_error(self, twilio_config):
        async def run() -> str:
            transport = httpx.MockTransport(lambda _: httpx.Response(401, json={"message": "bad auth"}))
            async with httpx.AsyncClient(transport=transport) as client:
                return await SmsOtpSender(twilio_config, client=client).send(ContactKind.PHONE, "+14155550123", "1")

        with pytest.raises(OtpDeliveryError, match="HTTP 401"):
            asyncio.run(run())


class TestRouting:
    def test_unconfigured_channel_raises(self):
        sender = RoutingOtpSender(email=ConsoleOtpSender(), sms=None)
        with pytest.raises(OtpDeliveryError, match="No delivery channel"):
            asyncio.run(sender.send(ContactKind.PHONE, "+14155550123", "123456"))

    def test_demo_mode_logs_codes(self, config):
        assert isinstance(build_sender(config), ConsoleOtpSender)

    def test_delivery_mode_routes_by_kind(self, twilio_config):
        """Test that delivery mode only wires channels that are configured."""
        sender = build_sender(twilio_config)
        assert isinstance(sender, RoutingOtpSender)
        with pytest.raises(OtpDeliveryError, match="No delivery channel configured for email"):
            asyncio.run(sender.send(ContactKind.EMAIL, "a@example.com", "123456"))
