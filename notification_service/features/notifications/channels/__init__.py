"""Delivery channels: web push and email."""

from notification_service.features.notifications.channels.base import (
    DeliveryResult,
    EmailTransport,
    PushTransport,
)
from notification_service.features.notifications.channels.email import HttpEmailTransport
from notification_service.features.notifications.channels.push import (
    GONE_STATUS_CODES,
    WebPushTransport,
    build_push_payload,
)

__all__ = [
    "GONE_STATUS_CODES",
    "DeliveryResult",
    "EmailTransport",
    "HttpEmailTransport",
    "PushTransport",
    "WebPushTransport",
    "build_push_payload",
]
