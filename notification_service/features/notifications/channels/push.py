"""Web Push transport backed by pywebpush."""

from __future__ import annotations

import asyncio
import json
import time
from typing import TYPE_CHECKING, Any

from pywebpush import WebPushException, webpush

from notification_service.features.notifications.channels.base import DeliveryResult
from notification_service.features.notifications.exceptions import ExpiredSubscriptionError, TransportError
from notification_service.features.notifications.metrics import (
    notification_delivered_total,
    notification_delivery_duration_seconds,
)
from notification_service.features.notifications.types import Channel, PushOutcome
from notification_service.infra.logging import get_lazy_logger, get_logger

if TYPE_CHECKING:
    from notification_service.core.settings import NotificationSettings, PushSettings
    from notification_service.features.notifications.formatter import PushContent
    from notification_service.features.notifications.models import PushSubscription

logger = get_logger(__name__, channel=Channel.PUSH.value)
lazy_logger = get_lazy_logger(__name__)

# Push services answer 404 or 410 for subscriptions that will never work again
GONE_STATUS_CODES = frozenset({404, 410})


def build_push_payload(push: PushContent, *, badge: str, tag: str) -> dict[str, Any]:
    """JSON document the service worker receives."""
    payload: dict[str, Any] = {
        "title": push.title,
        "body": push.body,
        "icon": push.icon,
        "badge": badge,
        "tag": tag,
        "data": push.data,
    }
    if push.actions:
        payload["actions"] = push.actions
    return payload


class WebPushTransport:
    """Sends VAPID-signed web push messages.

    ``pywebpush`` is synchronous, so each request runs in a worker thread.
    Without a VAPID private key the transport reports every send as an
    error and never contacts the push service.
    """

    def __init__(self, push_settings: PushSettings, notification_settings: NotificationSettings) -> None:
        self._settings = push_settings
        self._badge = notification_settings.badge
        self._tag = notification_settings.tag

    @property
    def is_configured(self) -> bool:
        """Whether VAPID signing material is available."""
        return self._settings.is_configured

    async def send_to_endpoint(
        self,
        subscription: PushSubscription,
        push: PushContent,
        *,
        urgent: bool = False,
    ) -> DeliveryResult:
        """Deliver ``push`` to one endpoint and classify the outcome."""
        endpoint_logger = logger.bind(subscription_id=str(subscription.id), endpoint=subscription.endpoint[:60])
        if not self.is_configured:
            endpoint_logger.warning("Push transport not configured, skipping delivery")
            notification_delivered_total.labels(channel=Channel.PUSH.value, status=PushOutcome.ERROR.value).inc()
            return DeliveryResult(outcome=PushOutcome.ERROR, error_message="VAPID private key not configured")

        data = json.dumps(build_push_payload(push, badge=self._badge, tag=self._tag))
        start_time = time.perf_counter()
        try:
            status_code = await asyncio.to_thread(self._deliver, subscription, data, urgent)
        except ExpiredSubscriptionError as exc:
            result = DeliveryResult(
                outcome=PushOutcome.EXPIRED,
                status_code=exc.status_code,
                error_message=str(exc),
            )
            endpoint_logger.info("Push endpoint gone", extra={"status_code": exc.status_code})
        except TransportError as exc:
            result = DeliveryResult(
                outcome=PushOutcome.ERROR,
                status_code=exc.upstream_status,
                error_message=exc.detail,
            )
            endpoint_logger.warning(
                "Push delivery failed",
                extra={"status_code": exc.upstream_status, "error": exc.detail},
            )
        else:
            result = DeliveryResult(outcome=PushOutcome.OK, status_code=status_code)
            lazy_logger.debug(lambda: f"push.send: subscription={subscription.id} -> {status_code}")

        elapsed = time.perf_counter() - start_time
        result.response_time_ms = int(elapsed * 1000)
        notification_delivery_duration_seconds.labels(channel=Channel.PUSH.value).observe(elapsed)
        notification_delivered_total.labels(channel=Channel.PUSH.value, status=result.outcome.value).inc()
        return result

    def _deliver(self, subscription: PushSubscription, data: str, urgent: bool) -> int | None:
        """Blocking send; raises ExpiredSubscriptionError or TransportError."""
        private_key = self._settings.vapid_private_key
        try:
            response = webpush(
                subscription_info=subscription.subscription_info(),
                data=data,
                vapid_private_key=private_key.get_secret_value() if private_key else None,
                # pywebpush adds aud/exp to the claims dict, so pass a fresh one
                vapid_claims={"sub": self._settings.vapid_claims_email},
                ttl=self._settings.ttl,
                timeout=self._settings.timeout,
                headers={"Urgency": "high" if urgent else "normal"},
            )
        except WebPushException as exc:
            status_code = exc.response.status_code if exc.response is not None else None
            if status_code in GONE_STATUS_CODES:
                raise ExpiredSubscriptionError(subscription.endpoint, status_code) from exc
            raise TransportError(str(exc), channel=Channel.PUSH.value, status_code=status_code) from exc
        except Exception as exc:
            raise TransportError(str(exc), channel=Channel.PUSH.value) from exc
        return getattr(response, "status_code", None)


__all__ = ["GONE_STATUS_CODES", "WebPushTransport", "build_push_payload"]
