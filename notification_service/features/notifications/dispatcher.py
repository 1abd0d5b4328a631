"""Dispatch router: one notification to one user across every channel.

Order of work for a send:

1. Format the notification (invalid requests fail here, nothing recorded).
2. Append and commit the history entry.
3. Resolve preferences.
4. Push to every subscription concurrently unless push is off for the type or quiet
   hours are active. Expired endpoints are removed from the registry.
5. Email immediately when the digest frequency is ``instant`` or the type
   is urgent, otherwise queue for the digest.

Failures in steps 4 and 5 are logged and counted; they never undo step 2
and never propagate to the caller.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from notification_service.core.database import utcnow
from notification_service.core.services.base import BaseService
from notification_service.features.notifications.digest import DigestItem
from notification_service.features.notifications.exceptions import NotificationValidationError, TransportError
from notification_service.features.notifications.metrics import (
    digest_entries_enqueued_total,
    notification_delivered_total,
    notification_dispatched_total,
    notification_quiet_hours_suppressed_total,
    notification_validation_errors_total,
    push_subscriptions_expired_total,
)
from notification_service.features.notifications.quiet_hours import is_quiet
from notification_service.features.notifications.settle import settle_all
from notification_service.features.notifications.types import (
    Channel,
    DigestFrequency,
    EmailOutcome,
    NotificationType,
    PushOutcome,
)
from notification_service.infra.logging import remove_from_log_context, set_log_context

if TYPE_CHECKING:
    from uuid import UUID

    from notification_service.features.notifications.channels.base import EmailTransport, PushTransport
    from notification_service.features.notifications.digest import DigestQueue
    from notification_service.features.notifications.formatter import (
        FormattedNotification,
        NotificationFormatter,
    )
    from notification_service.features.notifications.history import HistoryLedger
    from notification_service.features.notifications.models import PushSubscription
    from notification_service.features.notifications.preferences import PreferenceStore
    from notification_service.features.notifications.schemas import NotificationPreferences
    from notification_service.features.notifications.subscriptions import SubscriptionRegistry


@dataclass
class DispatchReport:
    """What a single dispatch did on each channel."""

    history_id: UUID
    notification_type: NotificationType
    push_enabled: bool = False
    push_suppressed_by_quiet_hours: bool = False
    push_delivered: int = 0
    push_expired: int = 0
    push_failed: int = 0
    email_outcome: EmailOutcome = EmailOutcome.DISABLED


class DispatchRouter(BaseService):
    """Routes one notification for one user to push, email or the digest queue."""

    def __init__(
        self,
        *,
        formatter: NotificationFormatter,
        preferences: PreferenceStore,
        subscriptions: SubscriptionRegistry,
        history: HistoryLedger,
        digest: DigestQueue,
        push_transport: PushTransport,
        email_transport: EmailTransport,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__()
        self._formatter = formatter
        self._preferences = preferences
        self._subscriptions = subscriptions
        self._history = history
        self._digest = digest
        self._push = push_transport
        self._email = email_transport
        self._clock = clock

    async def send(
        self,
        user_id: str,
        notification_type: NotificationType | str,
        payload: dict[str, Any],
    ) -> DispatchReport:
        """Dispatch one notification.

        Raises:
            NotificationValidationError: Unknown type or malformed payload
        """
        try:
            formatted = self._formatter.format(notification_type, payload)
        except NotificationValidationError as exc:
            reason = "unknown_type" if exc.field == "type" else "malformed_payload"
            notification_validation_errors_total.labels(reason=reason).inc()
            raise

        set_log_context(user_id=user_id, notification_type=formatted.notification_type.value)
        try:
            return await self._dispatch(user_id, formatted, payload)
        finally:
            remove_from_log_context("user_id", "notification_type")

    async def _dispatch(
        self,
        user_id: str,
        formatted: FormattedNotification,
        payload: dict[str, Any],
    ) -> DispatchReport:
        entry = await self._history.append(
            user_id,
            formatted.notification_type,
            formatted.title,
            formatted.body,
            payload,
        )
        notification_dispatched_total.labels(notification_type=formatted.notification_type.value).inc()
        report = DispatchReport(history_id=entry.id, notification_type=formatted.notification_type)

        preferences = await self._preferences.get(user_id)

        await self._push_branch(user_id, formatted, preferences, report)
        report.email_outcome = await self._email_branch(user_id, formatted, preferences)

        self.logger.info(
            "Notification dispatched",
            extra={
                "history_id": str(report.history_id),
                "push_delivered": report.push_delivered,
                "push_expired": report.push_expired,
                "push_failed": report.push_failed,
                "push_quiet": report.push_suppressed_by_quiet_hours,
                "email_outcome": report.email_outcome.value,
            },
        )
        return report

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    async def _push_branch(
        self,
        user_id: str,
        formatted: FormattedNotification,
        preferences: NotificationPreferences,
        report: DispatchReport,
    ) -> None:
        if not preferences.is_enabled(Channel.PUSH, formatted.notification_type):
            return
        report.push_enabled = True

        if is_quiet(preferences, self._clock()):
            report.push_suppressed_by_quiet_hours = True
            notification_quiet_hours_suppressed_total.labels(
                notification_type=formatted.notification_type.value,
            ).inc()
            self._lazy.debug(lambda: f"push suppressed by quiet hours for {user_id}")
            return

        try:
            subscriptions = await self._subscriptions.list(user_id)
        except Exception:
            self.logger.exception("Could not load push subscriptions")
            return

        outcomes = await settle_all(self._push_one(subscription, formatted) for subscription in subscriptions)
        for settled in outcomes:
            outcome = settled.value if settled.ok else PushOutcome.ERROR
            if outcome is PushOutcome.OK:
                report.push_delivered += 1
            elif outcome is PushOutcome.EXPIRED:
                report.push_expired += 1
            else:
                report.push_failed += 1

    async def _push_one(self, subscription: PushSubscription, formatted: FormattedNotification) -> PushOutcome:
        try:
            result = await self._push.send_to_endpoint(subscription, formatted.push, urgent=formatted.urgent)
        except Exception:
            self.logger.exception(
                "Push transport raised",
                extra={"subscription_id": str(subscription.id)},
            )
            notification_delivered_total.labels(channel=Channel.PUSH.value, status=PushOutcome.ERROR.value).inc()
            return PushOutcome.ERROR

        if result.outcome is PushOutcome.EXPIRED:
            try:
                await self._subscriptions.remove(subscription.id)
            except Exception:
                self.logger.exception(
                    "Could not remove expired push subscription",
                    extra={"subscription_id": str(subscription.id)},
                )
            else:
                push_subscriptions_expired_total.inc()
        return result.outcome

    # ------------------------------------------------------------------
    # Email
    # ------------------------------------------------------------------

    async def _email_branch(
        self,
        user_id: str,
        formatted: FormattedNotification,
        preferences: NotificationPreferences,
    ) -> EmailOutcome:
        if not preferences.is_enabled(Channel.EMAIL, formatted.notification_type):
            return EmailOutcome.DISABLED

        if preferences.digest_frequency is DigestFrequency.INSTANT or formatted.urgent:
            outcome = await self._send_email(user_id, formatted)
        else:
            outcome = await self._enqueue_digest(user_id, formatted)

        notification_delivered_total.labels(channel=Channel.EMAIL.value, status=outcome.value).inc()
        return outcome

    async def _send_email(self, user_id: str, formatted: FormattedNotification) -> EmailOutcome:
        try:
            await self._email.send(user_id, formatted.email)
        except TransportError as exc:
            self.logger.warning(
                "Email delivery failed",
                extra={"error": exc.detail, "upstream_status": exc.upstream_status},
            )
            return EmailOutcome.FAILED
        except Exception:
            self.logger.exception("Email transport raised")
            return EmailOutcome.FAILED
        return EmailOutcome.SENT

    async def _enqueue_digest(self, user_id: str, formatted: FormattedNotification) -> EmailOutcome:
        item = DigestItem(
            title=formatted.email.subject,
            body=formatted.email.text,
            payload=formatted.email.template_data,
        )
        try:
            await self._digest.enqueue(user_id, formatted.notification_type, item)
        except Exception:
            self.logger.exception("Could not enqueue digest entry")
            return EmailOutcome.FAILED

        digest_entries_enqueued_total.labels(notification_type=formatted.notification_type.value).inc()
        return EmailOutcome.QUEUED


__all__ = ["DispatchReport", "DispatchRouter"]
