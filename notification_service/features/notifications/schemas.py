"""Pydantic schemas for the notifications feature.

Preferences are a fixed channel × type structure: one ``ChannelToggles``
per channel with one boolean field per notification type. Type keys use the
public hyphenated vocabulary (``"goal-reached"``) and are validated against
the enum, so a misspelled key is rejected instead of silently ignored.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from notification_service.features.notifications.types import (
    Channel,
    DigestFrequency,
    EmailOutcome,
    NotificationType,
)

TIME_OF_DAY_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

_TOGGLE_FIELDS: dict[NotificationType, str] = {
    NotificationType.DONATION_RECEIVED: "donation_received",
    NotificationType.CAMPAIGN_UPDATE: "campaign_update",
    NotificationType.GOAL_REACHED: "goal_reached",
    NotificationType.CAMPAIGN_ENDING: "campaign_ending",
    NotificationType.TRUST_SCORE_CHANGED: "trust_score_changed",
}


def minute_of_day(value: str) -> int:
    """Convert ``"HH:MM"`` to minutes since midnight."""
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


# ============================================================================
# Preferences
# ============================================================================


class ChannelToggles(BaseModel):
    """Per-type switches for a single channel."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    donation_received: bool = Field(default=True, alias="donation-received")
    campaign_update: bool = Field(default=True, alias="campaign-update")
    goal_reached: bool = Field(default=True, alias="goal-reached")
    campaign_ending: bool = Field(default=True, alias="campaign-ending")
    trust_score_changed: bool = Field(default=False, alias="trust-score-changed")

    def is_enabled(self, notification_type: NotificationType) -> bool:
        """Whether ``notification_type`` is switched on for this channel."""
        return bool(getattr(self, _TOGGLE_FIELDS[notification_type]))

    def any_enabled(self, notification_types: set[NotificationType]) -> bool:
        """Whether at least one of ``notification_types`` is switched on."""
        return any(self.is_enabled(t) for t in notification_types)


class NotificationPreferences(BaseModel):
    """Full preference record for one user.

    The no-argument instance is the canonical default returned for users
    who never saved preferences.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    push: ChannelToggles = Field(default_factory=ChannelToggles)
    email: ChannelToggles = Field(default_factory=ChannelToggles)
    digest_frequency: DigestFrequency = DigestFrequency.INSTANT
    quiet_hours_enabled: bool = False
    quiet_hours_start: str = Field(default="22:00", pattern=TIME_OF_DAY_PATTERN)
    quiet_hours_end: str = Field(default="08:00", pattern=TIME_OF_DAY_PATTERN)

    def channel(self, channel: Channel) -> ChannelToggles:
        """Toggles for ``channel``."""
        return self.push if channel is Channel.PUSH else self.email

    def is_enabled(self, channel: Channel, notification_type: NotificationType) -> bool:
        """Whether ``notification_type`` may be delivered over ``channel``."""
        return self.channel(channel).is_enabled(notification_type)

    def channels_document(self) -> dict[str, dict[str, bool]]:
        """Channel × type matrix keyed by public names, as persisted."""
        return {
            Channel.PUSH.value: self.push.model_dump(by_alias=True),
            Channel.EMAIL.value: self.email.model_dump(by_alias=True),
        }


class ChannelTogglesUpdate(BaseModel):
    """Partial update of one channel's toggles."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    donation_received: bool | None = Field(default=None, alias="donation-received")
    campaign_update: bool | None = Field(default=None, alias="campaign-update")
    goal_reached: bool | None = Field(default=None, alias="goal-reached")
    campaign_ending: bool | None = Field(default=None, alias="campaign-ending")
    trust_score_changed: bool | None = Field(default=None, alias="trust-score-changed")


class PreferencesUpdate(BaseModel):
    """Partial preference update; only fields that are present are merged."""

    model_config = ConfigDict(extra="forbid")

    push: ChannelTogglesUpdate | None = None
    email: ChannelTogglesUpdate | None = None
    digest_frequency: DigestFrequency | None = None
    quiet_hours_enabled: bool | None = None
    quiet_hours_start: str | None = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    quiet_hours_end: str | None = Field(default=None, pattern=TIME_OF_DAY_PATTERN)

    def merged_into(self, current: NotificationPreferences) -> dict[str, Any]:
        """Return ``current`` as a dict with this update applied on top."""
        merged = current.model_dump(by_alias=True)
        for key, value in self.model_dump(exclude_unset=True, by_alias=True).items():
            if isinstance(value, dict):
                merged[key] = {**merged[key], **value}
            else:
                merged[key] = value
        return merged


# ============================================================================
# Subscriptions
# ============================================================================


class SubscriptionKeys(BaseModel):
    """Key material a browser returns from ``PushManager.subscribe``."""

    p256dh: str = Field(..., min_length=1, description="Client public key (base64url)")
    auth: str = Field(..., min_length=1, description="Authentication secret (base64url)")


class SubscriptionCreate(BaseModel):
    """Payload for registering a push endpoint."""

    endpoint: str = Field(..., min_length=1, max_length=2048, pattern=r"^https://")
    keys: SubscriptionKeys
    expires_at: datetime | None = None


class VapidPublicKeyResponse(BaseModel):
    """Application server key browsers pass to ``PushManager.subscribe``."""

    public_key: str | None = Field(description="VAPID public key (base64url); null when push is not configured")


class SubscriptionResponse(BaseModel):
    """Registered push endpoint."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    endpoint: str
    expires_at: datetime | None
    created_at: datetime


# ============================================================================
# History
# ============================================================================


class HistoryFilter(BaseModel):
    """Optional filters for history listings."""

    notification_type: NotificationType | None = None
    unread_only: bool = False
    limit: int = Field(default=50, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


class HistoryEntryResponse(BaseModel):
    """History ledger entry as returned to the UI."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    notification_type: NotificationType
    title: str
    body: str | None
    payload: dict[str, Any] | None
    sent_at: datetime
    read: bool
    read_at: datetime | None


class HistoryListResponse(BaseModel):
    """Page of history entries plus the user's unread count."""

    items: list[HistoryEntryResponse]
    unread_count: int


class UnreadCountResponse(BaseModel):
    """Number of unread history entries."""

    unread_count: int


class MarkAllReadResponse(BaseModel):
    """Number of entries flipped to read."""

    updated: int


# ============================================================================
# Sending
# ============================================================================


class SendNotificationRequest(BaseModel):
    """Single dispatch request."""

    user_id: str = Field(..., min_length=1, max_length=255)
    type: NotificationType
    payload: dict[str, Any] = Field(default_factory=dict)


class BatchNotificationRequest(BaseModel):
    """Bulk dispatch request."""

    notifications: list[SendNotificationRequest] = Field(..., min_length=1, max_length=10_000)


class DispatchResponse(BaseModel):
    """Outcome of one dispatch."""

    model_config = ConfigDict(from_attributes=True)

    history_id: UUID
    push_enabled: bool
    push_suppressed_by_quiet_hours: bool
    push_delivered: int
    push_expired: int
    push_failed: int
    email_outcome: EmailOutcome


class BatchResponse(BaseModel):
    """Outcome counters of a bulk dispatch."""

    model_config = ConfigDict(from_attributes=True)

    submitted: int
    dropped: int
    processed: int
    failed: int
    chunks: int


__all__ = [
    "TIME_OF_DAY_PATTERN",
    "BatchNotificationRequest",
    "BatchResponse",
    "ChannelToggles",
    "ChannelTogglesUpdate",
    "DispatchResponse",
    "HistoryEntryResponse",
    "HistoryFilter",
    "HistoryListResponse",
    "MarkAllReadResponse",
    "NotificationPreferences",
    "PreferencesUpdate",
    "SendNotificationRequest",
    "SubscriptionCreate",
    "SubscriptionKeys",
    "SubscriptionResponse",
    "UnreadCountResponse",
    "VapidPublicKeyResponse",
    "minute_of_day",
]
