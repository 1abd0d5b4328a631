"""History ledger: one entry per dispatch, used for the in-app notification list."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from notification_service.core.database import utcnow
from notification_service.core.services.base import BaseService
from notification_service.features.notifications.models import NotificationHistory
from notification_service.features.notifications.repository import (
    NotificationHistoryRepository,
    get_notification_history_repository,
)
from notification_service.features.notifications.schemas import HistoryFilter

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from notification_service.features.notifications.types import NotificationType


class HistoryLedger(BaseService):
    """Append-only record of notification attempts.

    Entries never change except for the ``read``/``read_at`` pair.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        repository: NotificationHistoryRepository | None = None,
        *,
        default_limit: int = 50,
    ) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._repository = repository or get_notification_history_repository()
        self._default_limit = default_limit

    async def append(
        self,
        user_id: str,
        notification_type: NotificationType,
        title: str,
        body: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> NotificationHistory:
        """Record a notification attempt; commits before returning."""
        async with self._session_factory.begin() as session:
            entry = await self._repository.create(
                session,
                NotificationHistory(
                    user_id=user_id,
                    notification_type=notification_type.value,
                    title=title,
                    body=body,
                    payload=payload,
                    sent_at=utcnow(),
                ),
            )

        self._lazy.debug(lambda: f"history.append({user_id=}, type={notification_type.value}) -> id={entry.id}")
        return entry

    async def mark_read(self, entry_id: UUID) -> NotificationHistory:
        """Mark one entry read. Already-read entries keep their first ``read_at``.

        Raises:
            NotFoundError: If the entry does not exist
        """
        async with self._session_factory.begin() as session:
            entry = await self._repository.get_or_raise(session, entry_id)
            if not entry.read:
                entry.read = True
                entry.read_at = utcnow()
                await session.flush()
        return entry

    async def mark_all_read(self, user_id: str) -> int:
        """Mark every unread entry of ``user_id`` read; returns how many changed."""
        async with self._session_factory.begin() as session:
            count = await self._repository.mark_all_read(session, user_id)

        self.logger.info("History marked read", extra={"user_id": user_id, "count": count})
        return count

    async def delete(self, entry_id: UUID) -> None:
        """Delete one entry.

        Raises:
            NotFoundError: If the entry does not exist
        """
        async with self._session_factory.begin() as session:
            entry = await self._repository.get_or_raise(session, entry_id)
            await self._repository.delete(session, entry)

    async def list(self, user_id: str, filters: HistoryFilter | None = None) -> Sequence[NotificationHistory]:
        """Entries of ``user_id``, most recent first."""
        filters = filters or HistoryFilter(limit=self._default_limit)
        async with self._session_factory() as session:
            return await self._repository.list_for_user(
                session,
                user_id,
                notification_type=filters.notification_type.value if filters.notification_type else None,
                unread_only=filters.unread_only,
                limit=filters.limit,
                offset=filters.offset,
            )

    async def unread_count(self, user_id: str) -> int:
        """Number of unread entries for ``user_id``."""
        async with self._session_factory() as session:
            return await self._repository.count_unread(session, user_id)

    async def get(self, entry_id: UUID) -> NotificationHistory | None:
        """Look up one entry."""
        async with self._session_factory() as session:
            return await self._repository.get(session, entry_id)


__all__ = ["HistoryLedger"]
