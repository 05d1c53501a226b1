"""themehook configuration."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Environment-driven settings (prefix ``THEMEHOOK_``)."""

    # Shared HMAC secret. Empty disables verification.
    webhook_secret: str = ""
    environment: Literal["development", "production"] = "development"
    # Debug escape hatch: accept every webhook unconditionally
    skip_signature_verification: bool = False

    data_file: str = "webhook-data.json"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    sse_keepalive_seconds: float = 15.0
    subscriber_queue_size: int = 100

    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    model_config = {"env_prefix": "THEMEHOOK_", "env_file": ".env", "extra": "ignore"}

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def verification_active(self) -> bool:
        """True when inbound webhooks are actually checked against the secret."""
        return bool(self.webhook_secret) and not self.skip_signature_verification


def get_settings() -> Settings:
    return Settings()
