"""Web Push (VAPID) settings.

Environment variables use PUSH_ prefix.
Example: PUSH_VAPID_PRIVATE_KEY=..., PUSH_VAPID_CLAIMS_EMAIL=mailto:ops@example.com
"""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class PushSettings(BaseSettings):
    """Web Push delivery configuration."""

    vapid_public_key: str | None = Field(
        default=None,
        description="VAPID public key handed to browsers when they subscribe",
    )
    vapid_private_key: SecretStr | None = Field(
        default=None,
        description="VAPID private key used to sign push requests",
    )
    vapid_claims_email: str = Field(
        default="mailto:noreply@blessed-horizon.com",
        description="Contact URI sent in the VAPID 'sub' claim",
    )
    ttl: int = Field(
        default=86400,
        ge=0,
        description="Seconds the push service keeps an undelivered message",
    )
    timeout: float = Field(default=10.0, gt=0, description="HTTP timeout per push request")

    @property
    def is_configured(self) -> bool:
        """Whether a private key is available for signing."""
        return self.vapid_private_key is not None and bool(
            self.vapid_private_key.get_secret_value(),
        )

    model_config = SettingsConfigDict(
        env_prefix="PUSH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
