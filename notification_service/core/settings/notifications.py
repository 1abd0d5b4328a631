"""Notification engine settings (dispatch, batching, digest scheduling)."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class NotificationSettings(BaseSettings):
    """Dispatch and batching configuration.

    Environment variables use NOTIFY_ prefix.
    Example: NOTIFY_BATCH_SIZE=100, NOTIFY_DIGEST_DAILY_HOUR=9
    """

    app_url: str = Field(
        default="https://blessed-horizon.com",
        description="Public application URL used for absolute links in emails",
    )
    batch_size: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Notifications sent concurrently per batch chunk",
    )
    badge: str = Field(default="/badge-72x72.png", description="Push badge image")
    tag: str = Field(default="blessed-horizon", description="Push notification tag")
    history_page_size: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Default number of history entries returned per listing",
    )

    # Digest scheduler
    digest_enabled: bool = Field(
        default=False,
        description="Run the in-process digest scheduler on application startup",
    )
    digest_daily_hour: int = Field(default=9, ge=0, le=23, description="UTC hour for digests")
    digest_weekly_day: int = Field(
        default=0,
        ge=0,
        le=6,
        description="Weekday for weekly digests (0=Monday)",
    )
    digest_misfire_grace_seconds: int = Field(
        default=60,
        ge=1,
        description="Seconds a late digest run may still start before it is skipped",
    )

    model_config = SettingsConfigDict(
        env_prefix="NOTIFY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
