"""Repositories for the notifications feature."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, select, update

from notification_service.core.database import BaseRepository, utcnow
from notification_service.features.notifications.models import (
    DigestQueueEntry,
    NotificationHistory,
    NotificationPreference,
    PushSubscription,
)
from notification_service.features.notifications.types import DigestFrequency

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession


class NotificationPreferenceRepository(BaseRepository[NotificationPreference]):
    """Repository for per-user preference rows."""

    def __init__(self) -> None:
        """Initialize with NotificationPreference model."""
        super().__init__(NotificationPreference)

    async def get_for_user(self, session: AsyncSession, user_id: str) -> NotificationPreference | None:
        """Return the preference row for ``user_id`` if one was ever saved."""
        return await self.get_by(session, NotificationPreference.user_id, user_id)

    async def save(
        self,
        session: AsyncSession,
        user_id: str,
        values: dict[str, Any],
    ) -> NotificationPreference:
        """Insert or overwrite the preference row for ``user_id``.

        Args:
            session: Database session
            user_id: Owner of the preferences
            values: Column values (channels, digest_frequency, quiet_hours_*)

        Returns:
            The persisted row
        """
        row = await self.get_for_user(session, user_id)
        if row is None:
            row = await self.create(session, NotificationPreference(user_id=user_id, **values))
            self._lazy.debug(lambda: f"db.save_preferences({user_id=}) -> created")
            return row

        for key, value in values.items():
            setattr(row, key, value)
        await session.flush()
        self._lazy.debug(lambda: f"db.save_preferences({user_id=}) -> updated")
        return row


class PushSubscriptionRepository(BaseRepository[PushSubscription]):
    """Repository for push endpoint registrations."""

    def __init__(self) -> None:
        """Initialize with PushSubscription model."""
        super().__init__(PushSubscription)

    async def get_for_endpoint(
        self,
        session: AsyncSession,
        user_id: str,
        endpoint: str,
    ) -> PushSubscription | None:
        """Get the registration for (user_id, endpoint)."""
        stmt = select(PushSubscription).where(
            PushSubscription.user_id == user_id,
            PushSubscription.endpoint == endpoint,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_user(self, session: AsyncSession, user_id: str) -> Sequence[PushSubscription]:
        """List a user's registrations, oldest first."""
        stmt = (
            select(PushSubscription)
            .where(PushSubscription.user_id == user_id)
            .order_by(PushSubscription.created_at, PushSubscription.id)
        )
        result = await session.execute(stmt)
        items = result.scalars().all()

        self._lazy.debug(lambda: f"db.list_subscriptions({user_id=}) -> {len(items)} items")
        return items

    async def delete_for_endpoint(self, session: AsyncSession, user_id: str, endpoint: str) -> bool:
        """Delete the registration for (user_id, endpoint); absent rows are not an error."""
        stmt = delete(PushSubscription).where(
            PushSubscription.user_id == user_id,
            PushSubscription.endpoint == endpoint,
        )
        result = await session.execute(stmt)
        return (result.rowcount or 0) > 0


class DigestQueueRepository(BaseRepository[DigestQueueEntry]):
    """Repository for held-back digest entries."""

    def __init__(self) -> None:
        """Initialize with DigestQueueEntry model."""
        super().__init__(DigestQueueEntry)

    async def pop_all(
        self,
        session: AsyncSession,
        user_id: str,
        notification_type: str,
    ) -> Sequence[DigestQueueEntry]:
        """Select and delete every entry for (user, type), in insertion order."""
        stmt = (
            select(DigestQueueEntry)
            .where(
                DigestQueueEntry.user_id == user_id,
                DigestQueueEntry.notification_type == notification_type,
            )
            .order_by(DigestQueueEntry.id)
        )
        result = await session.execute(stmt)
        entries = result.scalars().all()
        if entries:
            await session.execute(
                delete(DigestQueueEntry).where(DigestQueueEntry.id.in_([e.id for e in entries])),
            )

        self._lazy.debug(lambda: f"db.drain_digest({user_id=}, {notification_type=}) -> {len(entries)} entries")
        return entries

    async def pending_types(self, session: AsyncSession, user_id: str) -> list[str]:
        """Notification types with queued entries for ``user_id``, oldest first."""
        stmt = (
            select(DigestQueueEntry.notification_type, func.min(DigestQueueEntry.id).label("first_id"))
            .where(DigestQueueEntry.user_id == user_id)
            .group_by(DigestQueueEntry.notification_type)
            .order_by("first_id")
        )
        result = await session.execute(stmt)
        return [row.notification_type for row in result]

    async def pending_users(
        self,
        session: AsyncSession,
        frequency: DigestFrequency | None = None,
    ) -> list[str]:
        """Users with queued entries, optionally only those on ``frequency``.

        Users without a saved preference row count as ``instant``.
        """
        stmt = select(DigestQueueEntry.user_id).distinct()
        if frequency is not None:
            effective = func.coalesce(NotificationPreference.digest_frequency, DigestFrequency.INSTANT.value)
            stmt = stmt.outerjoin(
                NotificationPreference,
                NotificationPreference.user_id == DigestQueueEntry.user_id,
            ).where(effective == frequency.value)
        result = await session.execute(stmt.order_by(DigestQueueEntry.user_id))
        return list(result.scalars().all())

    async def count_for_user(self, session: AsyncSession, user_id: str) -> int:
        """Number of queued entries for ``user_id``."""
        stmt = select(func.count()).select_from(DigestQueueEntry).where(DigestQueueEntry.user_id == user_id)
        result = await session.execute(stmt)
        return int(result.scalar_one())


class NotificationHistoryRepository(BaseRepository[NotificationHistory]):
    """Repository for the notification history ledger."""

    def __init__(self) -> None:
        """Initialize with NotificationHistory model."""
        super().__init__(NotificationHistory)

    async def list_for_user(
        self,
        session: AsyncSession,
        user_id: str,
        *,
        notification_type: str | None = None,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[NotificationHistory]:
        """List a user's entries, most recent first.

        Args:
            session: Database session
            user_id: Owner of the entries
            notification_type: Only entries of this type
            unread_only: Only entries not yet read
            limit: Maximum number of entries
            offset: Entries to skip

        Returns:
            Sequence of history entries
        """
        stmt = select(NotificationHistory).where(NotificationHistory.user_id == user_id)
        if notification_type is not None:
            stmt = stmt.where(NotificationHistory.notification_type == notification_type)
        if unread_only:
            stmt = stmt.where(NotificationHistory.read.is_(False))
        stmt = (
            stmt.order_by(NotificationHistory.sent_at.desc(), NotificationHistory.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await session.execute(stmt)
        items = result.scalars().all()

        self._lazy.debug(
            lambda: f"db.list_history({user_id=}, {notification_type=}, {unread_only=}, {limit=}, {offset=}) -> {len(items)} items",
        )
        return items

    async def count_unread(self, session: AsyncSession, user_id: str) -> int:
        """Number of unread entries for ``user_id``."""
        stmt = (
            select(func.count())
            .select_from(NotificationHistory)
            .where(NotificationHistory.user_id == user_id, NotificationHistory.read.is_(False))
        )
        result = await session.execute(stmt)
        return int(result.scalar_one())

    async def mark_all_read(self, session: AsyncSession, user_id: str) -> int:
        """Flip every unread entry of ``user_id`` to read; returns the count."""
        stmt = (
            update(NotificationHistory)
            .where(NotificationHistory.user_id == user_id, NotificationHistory.read.is_(False))
            .values(read=True, read_at=utcnow())
        )
        result = await session.execute(stmt)
        count = result.rowcount or 0

        self._lazy.debug(lambda: f"db.mark_all_read({user_id=}) -> {count} entries")
        return count


# Factory functions for dependency injection
_preference_repository: NotificationPreferenceRepository | None = None
_subscription_repository: PushSubscriptionRepository | None = None
_digest_repository: DigestQueueRepository | None = None
_history_repository: NotificationHistoryRepository | None = None


def get_notification_preference_repository() -> NotificationPreferenceRepository:
    """Get NotificationPreferenceRepository singleton instance."""
    global _preference_repository
    if _preference_repository is None:
        _preference_repository = NotificationPreferenceRepository()
    return _preference_repository


def get_push_subscription_repository() -> PushSubscriptionRepository:
    """Get PushSubscriptionRepository singleton instance."""
    global _subscription_repository
    if _subscription_repository is None:
        _subscription_repository = PushSubscriptionRepository()
    return _subscription_repository


def get_digest_queue_repository() -> DigestQueueRepository:
    """Get DigestQueueRepository singleton instance."""
    global _digest_repository
    if _digest_repository is None:
        _digest_repository = DigestQueueRepository()
    return _digest_repository


def get_notification_history_repository() -> NotificationHistoryRepository:
    """Get NotificationHistoryRepository singleton instance."""
    global _history_repository
    if _history_repository is None:
        _history_repository = NotificationHistoryRepository()
    return _history_repository


__all__ = [
    "DigestQueueRepository",
    "NotificationHistoryRepository",
    "NotificationPreferenceRepository",
    "PushSubscriptionRepository",
    "get_digest_queue_repository",
    "get_notification_history_repository",
    "get_notification_preference_repository",
    "get_push_subscription_repository",
]
