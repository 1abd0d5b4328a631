"""Minimal generic repository for SQLAlchemy models.

Provides basic CRUD operations with explicit session passing. Transaction
boundaries belong to the caller; repositories only flush.

Example:
    class HistoryRepository(BaseRepository[NotificationHistory]):
        async def list_for_user(self, session: AsyncSession, user_id: str) -> Sequence[NotificationHistory]:
            stmt = select(NotificationHistory).where(NotificationHistory.user_id == user_id)
            result = await session.execute(stmt)
            return result.scalars().all()

    repo = HistoryRepository(NotificationHistory)
    async with session_factory.begin() as session:
        entry = await repo.get(session, entry_id)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar, cast

from sqlalchemy import delete as sql_delete
from sqlalchemy import select

from notification_service.core.database.exceptions import NotFoundError
from notification_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute


T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Minimal generic repository for CRUD operations.

    Provides:
        - get(session, id) -> T | None
        - get_or_raise(session, id) -> T (raises NotFoundError)
        - get_by(session, attr, value) -> T | None
        - create(session, instance) -> T
        - delete(session, instance) -> None
        - delete_by_id(session, id) -> bool (no-op for unknown ids)
    """

    __slots__ = ("model", "_logger", "_lazy")

    def __init__(self, model: type[T]) -> None:
        """Initialize repository with model class.

        Args:
            model: SQLAlchemy model class
        """
        self.model = model
        # Standard logger for INFO/WARNING/ERROR
        self._logger = logging.getLogger(f"repository.{model.__name__}")
        # Lazy logger for DEBUG (zero overhead when DEBUG disabled)
        self._lazy = get_lazy_logger(f"repository.{model.__name__}")

    async def get(self, session: AsyncSession, id: Any) -> T | None:  # noqa: A002
        """Get entity by primary key, or None."""
        instance = await session.get(self.model, id)

        self._lazy.debug(
            lambda: f"db.get: {self.model.__name__}({id}) -> {'found' if instance else 'not found'}",
        )
        return instance

    async def get_or_raise(self, session: AsyncSession, id: Any) -> T:  # noqa: A002
        """Get entity by primary key or raise NotFoundError.

        Raises:
            NotFoundError: If entity doesn't exist
        """
        instance = await self.get(session, id)
        if instance is None:
            self._logger.info(
                "Entity not found",
                extra={
                    "entity": self.model.__name__,
                    "id": str(id),
                    "operation": "db.get_or_raise",
                },
            )
            raise NotFoundError(self.model.__name__, {"id": id})
        return instance

    async def get_by(
        self,
        session: AsyncSession,
        attr: InstrumentedAttribute[Any],
        value: Any,
    ) -> T | None:
        """Get the entity whose ``attr`` equals ``value``."""
        stmt = select(self.model).where(attr == value)
        result = await session.execute(stmt)
        instance = result.scalar_one_or_none()

        self._lazy.debug(
            lambda: f"db.get_by: {self.model.__name__}.{attr.key}={value!r} -> {'found' if instance else 'not found'}",
        )
        return instance

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Persist a new entity.

        Adds to session, flushes to get generated values and refreshes so
        server defaults are loaded.
        """
        session.add(instance)
        await session.flush()
        await session.refresh(instance)

        entity_id = getattr(instance, "id", None)
        self._lazy.debug(lambda: f"db.create: {self.model.__name__}(id={entity_id})")
        return instance

    async def delete(self, session: AsyncSession, instance: T) -> None:
        """Delete a loaded entity."""
        entity_id = getattr(instance, "id", None)
        await session.delete(instance)
        await session.flush()

        self._logger.info(
            "Entity deleted",
            extra={"entity": self.model.__name__, "id": str(entity_id), "operation": "db.delete"},
        )

    async def delete_by_id(self, session: AsyncSession, id: Any) -> bool:  # noqa: A002
        """Delete by primary key with a single DELETE statement.

        Deleting an id that no longer exists is not an error.

        Returns:
            True if a row was removed
        """
        pk = cast("Any", self.model).id
        result = await session.execute(sql_delete(self.model).where(pk == id))
        deleted = (result.rowcount or 0) > 0

        self._lazy.debug(
            lambda: f"db.delete_by_id: {self.model.__name__}({id}) -> {'deleted' if deleted else 'absent'}",
        )
        return deleted
