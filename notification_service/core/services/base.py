"""Base service class for business logic."""

from __future__ import annotations

import logging

from notification_service.infra.logging import get_lazy_logger


class BaseService:
    """Base class for service-layer components.

    Loggers:
        - self.logger: Standard logger for INFO/WARNING/ERROR (always evaluated)
        - self._lazy: Lazy logger for DEBUG (zero overhead when DEBUG disabled)

    Example:
        class HistoryLedger(BaseService):
            async def mark_read(self, entry_id: UUID) -> HistoryEntry:
                self.logger.info("Marking entry read", extra={"entry_id": str(entry_id)})
                ...
                self._lazy.debug(lambda: f"entry state: {entry!r}")
    """

    def __init__(self) -> None:
        class_name = self.__class__.__name__
        self.logger = logging.getLogger(class_name)
        self._lazy = get_lazy_logger(class_name)
