"""Closed vocabularies for the notification engine."""

from __future__ import annotations

from enum import StrEnum


class NotificationType(StrEnum):
    """Notification types the engine knows how to format and route."""

    DONATION_RECEIVED = "donation-received"
    CAMPAIGN_UPDATE = "campaign-update"
    GOAL_REACHED = "goal-reached"
    CAMPAIGN_ENDING = "campaign-ending"
    TRUST_SCORE_CHANGED = "trust-score-changed"

    @property
    def is_urgent(self) -> bool:
        """Urgent types bypass digest batching for email."""
        return self in URGENT_TYPES


class Channel(StrEnum):
    """Delivery channels."""

    PUSH = "push"
    EMAIL = "email"


class DigestFrequency(StrEnum):
    """How non-urgent email notifications are delivered."""

    INSTANT = "instant"
    DAILY = "daily"
    WEEKLY = "weekly"
    NEVER = "never"


class PushOutcome(StrEnum):
    """Result of a single push attempt against one endpoint."""

    OK = "ok"
    EXPIRED = "expired"  # endpoint permanently gone (HTTP 404/410)
    ERROR = "error"


class EmailOutcome(StrEnum):
    """What the email branch of a dispatch did."""

    SENT = "sent"
    QUEUED = "queued"
    FAILED = "failed"
    DISABLED = "disabled"


URGENT_TYPES: frozenset[NotificationType] = frozenset(
    {
        NotificationType.DONATION_RECEIVED,
        NotificationType.GOAL_REACHED,
        NotificationType.CAMPAIGN_ENDING,
    },
)


__all__ = [
    "URGENT_TYPES",
    "Channel",
    "DigestFrequency",
    "EmailOutcome",
    "NotificationType",
    "PushOutcome",
]
