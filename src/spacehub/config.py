from typing import Literal

from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str
    host: str
    port: int
    debug: bool
    session_secret_key: str  # HMAC key used to sign session tokens
    session_max_age_days: int = 30
    cors_origins: list[str] = []
    environment: Literal["production", "development"] = "production"

    # One-time passcodes
    otp_mode: Literal["demo", "delivery"] = "demo"  # demo: codes are only logged, never sent
    otp_debug_codes: bool = False  # Echo generated codes in send-otp responses (ignored in production)
    otp_sweep_interval_seconds: float = 300

    # Email delivery (otp_mode=delivery)
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_from: str | None = None
    smtp_use_tls: bool = True

    # SMS delivery via Twilio (otp_mode=delivery)
    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_from_number: str | None = None

    # Build metadata injected during Docker build via environment variables
    git_commit_hash: str = "unknown"
    build_time: str = "unknown"

    model_config = {
        "env_file": [".env"],
        "env_prefix": "SPACEHUB_",
        "extra": "ignore",
    }

    @property
    def expose_otp_codes(self) -> bool:
        """Whether generated OTP codes may be returned to clients."""
        return self.otp_debug_codes and self.environment != "production"

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_from)

    @property
    def twilio_configured(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_from_number)
