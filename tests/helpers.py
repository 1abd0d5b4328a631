"""Shared test data builders."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from notification_service.features.notifications.types import NotificationType

_PAYLOADS: dict[NotificationType, dict[str, Any]] = {
    NotificationType.DONATION_RECEIVED: {
        "donor_name": "Jane",
        "amount": "$25.00",
        "campaign_id": "c-1",
        "campaign_title": "Clean Water",
        "donation_id": "d-1",
    },
    NotificationType.CAMPAIGN_UPDATE: {
        "campaign_id": "c-1",
        "campaign_title": "Clean Water",
        "update_title": "First well dug",
        "update_id": "u-9",
    },
    NotificationType.GOAL_REACHED: {
        "campaign_id": "c-1",
        "campaign_title": "Clean Water",
        "goal_amount": 1000,
        "current_amount": 1250,
    },
    NotificationType.CAMPAIGN_ENDING: {
        "campaign_id": "c-1",
        "campaign_title": "Clean Water",
        "time_left": "24 hours",
    },
    NotificationType.TRUST_SCORE_CHANGED: {
        "old_score": 70,
        "new_score": 82,
    },
}


def make_payload(notification_type: NotificationType | str, **overrides: Any) -> dict[str, Any]:
    """A valid payload for ``notification_type`` with ``overrides`` applied."""
    payload = dict(_PAYLOADS[NotificationType(notification_type)])
    payload.update(overrides)
    return payload


class FrozenClock:
    """Callable clock that returns ``now`` until moved."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2025, 6, 2, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def set(self, hour: int, minute: int = 0, *, day: int | None = None) -> None:
        self.now = self.now.replace(hour=hour, minute=minute, day=day or self.now.day)
