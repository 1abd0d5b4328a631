"""Email composer settings.

Rendering and delivery of HTML email belong to an external composition
service; this service only posts the template name and data to it.

Environment variables use EMAIL_ prefix.
Example: EMAIL_SERVICE_URL=https://mailer.internal/send
"""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmailSettings(BaseSettings):
    """Email transport configuration."""

    service_url: str = Field(
        default="http://localhost:8025/send-email",
        description="Endpoint of the external email composition service",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Bearer token for the composition service",
    )
    timeout: float = Field(default=10.0, gt=0, le=120, description="Request timeout in seconds")
    from_email: str = Field(
        default="noreply@blessed-horizon.com",
        description="Sender address forwarded to the composer",
    )
    from_name: str = Field(default="Blessed Horizon", description="Sender display name")

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
