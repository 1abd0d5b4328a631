"""Notification dispatch engine.

Resolves per-user preferences, applies quiet hours, delivers web push and
email (or queues email for a digest), keeps the history ledger and fans out
broadcast events in bounded batches.

Example:
    from notification_service.features.notifications import (
        NotificationService,
        build_notification_context,
    )

    service = NotificationService(build_notification_context(session_factory))
    await service.send_notification("u-1", "donation-received", {"amount": "$25", ...})
"""

from __future__ import annotations

from .batch import BatchItem, BatchOrchestrator, BatchReport
from .context import NotificationContext, build_notification_context
from .dispatcher import DispatchReport, DispatchRouter
from .exceptions import ExpiredSubscriptionError, NotificationValidationError, TransportError
from .formatter import EmailContent, FormattedNotification, NotificationFormatter, PushContent
from .quiet_hours import is_quiet
from .schemas import NotificationPreferences, PreferencesUpdate
from .service import NotificationService, get_notification_service
from .settle import settle_all
from .types import Channel, DigestFrequency, EmailOutcome, NotificationType, PushOutcome

__all__ = [
    "BatchItem",
    "BatchOrchestrator",
    "BatchReport",
    "Channel",
    "DigestFrequency",
    "DispatchReport",
    "DispatchRouter",
    "EmailContent",
    "EmailOutcome",
    "ExpiredSubscriptionError",
    "FormattedNotification",
    "NotificationContext",
    "NotificationFormatter",
    "NotificationPreferences",
    "NotificationService",
    "NotificationType",
    "NotificationValidationError",
    "PreferencesUpdate",
    "PushContent",
    "PushOutcome",
    "TransportError",
    "build_notification_context",
    "get_notification_service",
    "is_quiet",
    "settle_all",
]
