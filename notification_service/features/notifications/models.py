"""SQLAlchemy models for the notifications feature."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from notification_service.core.database import Base, UUIDv7TimestampedBase, utcnow


class NotificationPreference(UUIDv7TimestampedBase):
    """Per-user delivery preferences.

    One row per user. The channel × type switches are stored as a JSON
    document (``{"push": {"donation-received": true, ...}, "email": {...}}``)
    validated by ``NotificationPreferences`` on the way in and out. Users
    without a row resolve to the default preferences.
    """

    __tablename__ = "notification_preferences"

    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Owner of the preferences",
    )
    channels: Mapped[dict[str, Any]] = mapped_column(
        JSONB().with_variant(JSON(), "sqlite"),
        nullable=False,
        comment="Channel x notification type switches",
    )
    digest_frequency: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="instant",
        comment="instant, daily, weekly or never",
    )
    quiet_hours_enabled: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    quiet_hours_start: Mapped[str] = mapped_column(
        String(5),
        nullable=False,
        default="22:00",
        comment="HH:MM, UTC",
    )
    quiet_hours_end: Mapped[str] = mapped_column(
        String(5),
        nullable=False,
        default="08:00",
        comment="HH:MM, UTC",
    )

    def __repr__(self) -> str:
        return f"<NotificationPreference(user_id={self.user_id}, digest={self.digest_frequency})>"


class PushSubscription(UUIDv7TimestampedBase):
    """A push-capable browser or device endpoint registered by a user.

    Unique by (user_id, endpoint). Rows are deleted when the user revokes
    the subscription or when the push service reports the endpoint as gone.
    """

    __tablename__ = "push_subscriptions"

    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    endpoint: Mapped[str] = mapped_column(
        Text(),
        nullable=False,
        comment="Push service URL for this device",
    )
    p256dh_key: Mapped[str] = mapped_column(
        Text(),
        nullable=False,
        comment="Client ECDH public key (base64url)",
    )
    auth_key: Mapped[str] = mapped_column(
        Text(),
        nullable=False,
        comment="Client auth secret (base64url)",
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Expiry reported by the browser, if any",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "endpoint", name="uq_push_subscription_user_endpoint"),
    )

    def subscription_info(self) -> dict[str, Any]:
        """Subscription in the shape ``pywebpush`` expects."""
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh_key, "auth": self.auth_key},
        }

    def __repr__(self) -> str:
        return f"<PushSubscription(id={self.id}, user_id={self.user_id}, endpoint={self.endpoint[:40]})>"


class DigestQueueEntry(Base):
    """An email notification held back for the next digest.

    Uses an autoincrement key so drains return entries in exact insertion
    order, even for entries enqueued within the same millisecond.
    """

    __tablename__ = "digest_queue"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    notification_type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(Text(), nullable=False)
    body: Mapped[str | None] = mapped_column(Text(), nullable=True)
    payload: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB().with_variant(JSON(), "sqlite"),
        nullable=True,
    )
    enqueued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        Index("idx_digest_queue_user_type", "user_id", "notification_type", "id"),
    )

    def __repr__(self) -> str:
        return f"<DigestQueueEntry(id={self.id}, user_id={self.user_id}, type={self.notification_type})>"


class NotificationHistory(UUIDv7TimestampedBase):
    """One row per dispatch attempt, whatever the channels did.

    Immutable apart from the ``read``/``read_at`` pair.
    """

    __tablename__ = "notification_history"

    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    notification_type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(Text(), nullable=False)
    body: Mapped[str | None] = mapped_column(Text(), nullable=True)
    payload: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB().with_variant(JSON(), "sqlite"),
        nullable=True,
    )
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_notification_history_user_sent", "user_id", "sent_at"),
        Index("idx_notification_history_user_read", "user_id", "read"),
    )

    def __repr__(self) -> str:
        return f"<NotificationHistory(id={self.id}, user_id={self.user_id}, type={self.notification_type})>"


__all__ = [
    "DigestQueueEntry",
    "NotificationHistory",
    "NotificationPreference",
    "PushSubscription",
]
