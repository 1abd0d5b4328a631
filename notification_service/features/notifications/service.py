"""Notification service: the entry point other parts of the app call."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from notification_service.core.database import NotFoundError
from notification_service.core.exceptions import NotFoundException
from notification_service.core.services.base import BaseService
from notification_service.features.notifications.batch import BatchItem

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime
    from uuid import UUID

    from notification_service.features.notifications.batch import BatchReport
    from notification_service.features.notifications.context import NotificationContext
    from notification_service.features.notifications.dispatcher import DispatchReport
    from notification_service.features.notifications.models import NotificationHistory, PushSubscription
    from notification_service.features.notifications.schemas import (
        HistoryFilter,
        NotificationPreferences,
        PreferencesUpdate,
    )
    from notification_service.features.notifications.types import NotificationType


class NotificationService(BaseService):
    """Facade over the dispatch engine, preference store, registry and ledger.

    Example:
        service = NotificationService(build_notification_context(session_factory))
        await service.send_notification("u-1", "goal-reached", {"campaign_id": "c-1", ...})
    """

    def __init__(self, context: NotificationContext) -> None:
        super().__init__()
        self.context = context

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def send_notification(
        self,
        user_id: str,
        notification_type: NotificationType | str,
        payload: dict[str, Any],
    ) -> DispatchReport:
        """Send one notification to one user.

        Raises:
            NotificationValidationError: Unknown type or malformed payload
        """
        return await self.context.router.send(user_id, notification_type, payload)

    async def send_batch_notifications(
        self,
        notifications: Iterable[BatchItem | dict[str, Any]],
    ) -> BatchReport:
        """Send many notifications; per-item failures are only counted and logged.

        Items may be ``BatchItem`` instances or mappings with ``user_id``,
        ``type`` and ``payload`` keys.
        """
        items = [
            item
            if isinstance(item, BatchItem)
            else BatchItem(user_id=item["user_id"], notification_type=item["type"], payload=item.get("payload", {}))
            for item in notifications
        ]
        return await self.context.batch.send_batch(items)

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    async def get_preferences(self, user_id: str) -> NotificationPreferences:
        return await self.context.preferences.get(user_id)

    async def update_preferences(
        self,
        user_id: str,
        partial: dict[str, Any] | PreferencesUpdate,
    ) -> NotificationPreferences:
        """Merge ``partial`` into the user's preferences.

        Raises:
            NotificationValidationError: Unknown key or malformed value
        """
        return await self.context.preferences.update(user_id, partial)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def list_history(
        self,
        user_id: str,
        filters: HistoryFilter | None = None,
    ) -> Sequence[NotificationHistory]:
        return await self.context.history.list(user_id, filters)

    async def mark_read(self, entry_id: UUID, user_id: str | None = None) -> NotificationHistory:
        """Mark an entry read.

        When ``user_id`` is given, entries owned by someone else are reported
        as missing.

        Raises:
            NotFoundException: Unknown entry
        """
        await self._ensure_entry(entry_id, user_id)
        try:
            return await self.context.history.mark_read(entry_id)
        except NotFoundError as exc:
            raise self._entry_not_found(entry_id) from exc

    async def mark_all_read(self, user_id: str) -> int:
        return await self.context.history.mark_all_read(user_id)

    async def delete_history_entry(self, entry_id: UUID, user_id: str | None = None) -> None:
        """Delete an entry.

        Raises:
            NotFoundException: Unknown entry
        """
        await self._ensure_entry(entry_id, user_id)
        try:
            await self.context.history.delete(entry_id)
        except NotFoundError as exc:
            raise self._entry_not_found(entry_id) from exc

    async def unread_count(self, user_id: str) -> int:
        return await self.context.history.unread_count(user_id)

    async def _ensure_entry(self, entry_id: UUID, user_id: str | None) -> None:
        if user_id is None:
            return
        entry = await self.context.history.get(entry_id)
        if entry is None or entry.user_id != user_id:
            raise self._entry_not_found(entry_id)

    @staticmethod
    def _entry_not_found(entry_id: UUID) -> NotFoundException:
        return NotFoundException(
            detail=f"History entry {entry_id} not found",
            type="history-entry-not-found",
            extra={"entry_id": str(entry_id)},
        )

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    async def register_subscription(
        self,
        user_id: str,
        endpoint: str,
        p256dh_key: str,
        auth_key: str,
        expires_at: datetime | None = None,
    ) -> PushSubscription:
        return await self.context.subscriptions.register(user_id, endpoint, p256dh_key, auth_key, expires_at)

    async def remove_subscription(self, subscription_id: UUID, user_id: str | None = None) -> bool:
        """Remove a subscription; unknown ids (or ids owned by someone else) are a no-op."""
        if user_id is not None:
            subscription = await self.context.subscriptions.get(subscription_id)
            if subscription is None or subscription.user_id != user_id:
                return False
        return await self.context.subscriptions.remove(subscription_id)

    async def unsubscribe_endpoint(self, user_id: str, endpoint: str) -> bool:
        """Revoke the caller's subscription for a browser endpoint; unknown endpoints are a no-op."""
        return await self.context.subscriptions.remove_for_user(user_id, endpoint)

    async def list_subscriptions(self, user_id: str) -> Sequence[PushSubscription]:
        return await self.context.subscriptions.list(user_id)


# Singleton instance
_service: NotificationService | None = None


def get_notification_service() -> NotificationService:
    """Get or create the singleton NotificationService on the process-wide database."""
    global _service
    if _service is None:
        from notification_service.features.notifications.context import build_notification_context
        from notification_service.infra.database import get_session_factory

        _service = NotificationService(build_notification_context(get_session_factory()))
    return _service


def reset_notification_service() -> None:
    """Forget the singleton (application shutdown, tests)."""
    global _service
    _service = None


__all__ = ["NotificationService", "get_notification_service", "reset_notification_service"]
