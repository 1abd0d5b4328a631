"""Digest queue: email notifications held back for a periodic summary."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from notification_service.core.services.base import BaseService
from notification_service.features.notifications.models import DigestQueueEntry
from notification_service.features.notifications.repository import (
    DigestQueueRepository,
    get_digest_queue_repository,
)
from notification_service.features.notifications.types import DigestFrequency, NotificationType

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


@dataclass(slots=True, frozen=True)
class DigestItem:
    """Rendered content queued for a digest."""

    title: str
    body: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)


class DigestQueue(BaseService):
    """FIFO per (user, type). Entries are never deduplicated."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        repository: DigestQueueRepository | None = None,
    ) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._repository = repository or get_digest_queue_repository()

    async def enqueue(
        self,
        user_id: str,
        notification_type: NotificationType,
        item: DigestItem,
    ) -> DigestQueueEntry:
        """Append ``item`` to the user's queue for ``notification_type``."""
        async with self._session_factory.begin() as session:
            entry = await self._repository.create(
                session,
                DigestQueueEntry(
                    user_id=user_id,
                    notification_type=notification_type.value,
                    title=item.title,
                    body=item.body,
                    payload=item.payload,
                ),
            )

        self._lazy.debug(lambda: f"digest.enqueue({user_id=}, type={notification_type.value}) -> id={entry.id}")
        return entry

    async def drain(self, user_id: str, notification_type: NotificationType) -> Sequence[DigestQueueEntry]:
        """Remove and return every entry for (user, type), oldest first."""
        async with self._session_factory.begin() as session:
            entries = await self._repository.pop_all(session, user_id, notification_type.value)

        if entries:
            self.logger.info(
                "Digest entries drained",
                extra={"user_id": user_id, "notification_type": notification_type.value, "count": len(entries)},
            )
        return entries

    async def drain_all(self, user_id: str) -> dict[NotificationType, Sequence[DigestQueueEntry]]:
        """Drain every type queued for ``user_id``, grouped by type."""
        async with self._session_factory() as session:
            types = await self._repository.pending_types(session, user_id)

        drained: dict[NotificationType, Sequence[DigestQueueEntry]] = {}
        for raw_type in types:
            notification_type = NotificationType(raw_type)
            entries = await self.drain(user_id, notification_type)
            if entries:
                drained[notification_type] = entries
        return drained

    async def pending_users(self, frequency: DigestFrequency | None = None) -> list[str]:
        """Users with queued entries, optionally restricted to a digest frequency."""
        async with self._session_factory() as session:
            return await self._repository.pending_users(session, frequency)

    async def count(self, user_id: str) -> int:
        """Number of entries queued for ``user_id``."""
        async with self._session_factory() as session:
            return await self._repository.count_for_user(session, user_id)


__all__ = ["DigestItem", "DigestQueue"]
