"""Registry of push endpoints per user."""

from __future__ import annotations

from typing import TYPE_CHECKING

from notification_service.core.services.base import BaseService
from notification_service.features.notifications.models import PushSubscription
from notification_service.features.notifications.repository import (
    PushSubscriptionRepository,
    get_push_subscription_repository,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


class SubscriptionRegistry(BaseService):
    """Stores push subscriptions, unique per (user, endpoint).

    ``remove`` is idempotent: concurrent dispatches may all see the same
    endpoint expire and each try to delete it.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        repository: PushSubscriptionRepository | None = None,
    ) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._repository = repository or get_push_subscription_repository()

    async def register(
        self,
        user_id: str,
        endpoint: str,
        p256dh_key: str,
        auth_key: str,
        expires_at: datetime | None = None,
    ) -> PushSubscription:
        """Create or refresh the subscription for (user_id, endpoint).

        Re-registering a known endpoint overwrites its keys and expiry.
        """
        async with self._session_factory.begin() as session:
            subscription = await self._repository.get_for_endpoint(session, user_id, endpoint)
            if subscription is None:
                subscription = await self._repository.create(
                    session,
                    PushSubscription(
                        user_id=user_id,
                        endpoint=endpoint,
                        p256dh_key=p256dh_key,
                        auth_key=auth_key,
                        expires_at=expires_at,
                    ),
                )
                created = True
            else:
                subscription.p256dh_key = p256dh_key
                subscription.auth_key = auth_key
                subscription.expires_at = expires_at
                await session.flush()
                created = False

        self.logger.info(
            "Push subscription registered" if created else "Push subscription refreshed",
            extra={"user_id": user_id, "subscription_id": str(subscription.id), "endpoint": endpoint[:60]},
        )
        return subscription

    async def remove(self, subscription_id: UUID) -> bool:
        """Delete a subscription by id. Unknown ids are a no-op.

        Returns:
            True if a row was deleted
        """
        async with self._session_factory.begin() as session:
            deleted = await self._repository.delete_by_id(session, subscription_id)

        if deleted:
            self.logger.info("Push subscription removed", extra={"subscription_id": str(subscription_id)})
        return deleted

    async def remove_for_user(self, user_id: str, endpoint: str) -> bool:
        """Revoke the subscription a user holds for ``endpoint``."""
        async with self._session_factory.begin() as session:
            deleted = await self._repository.delete_for_endpoint(session, user_id, endpoint)

        if deleted:
            self.logger.info("Push subscription revoked", extra={"user_id": user_id, "endpoint": endpoint[:60]})
        return deleted

    async def list(self, user_id: str) -> Sequence[PushSubscription]:
        """Subscriptions of ``user_id``, oldest registration first."""
        async with self._session_factory() as session:
            return await self._repository.list_for_user(session, user_id)

    async def get(self, subscription_id: UUID) -> PushSubscription | None:
        """Look up one subscription."""
        async with self._session_factory() as session:
            return await self._repository.get(session, subscription_id)


__all__ = ["SubscriptionRegistry"]
