"""Batch fan-out for broadcast-style events."""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from notification_service.core.services.base import BaseService
from notification_service.features.notifications.exceptions import NotificationValidationError
from notification_service.features.notifications.formatter import parse_notification_type
from notification_service.features.notifications.metrics import (
    notification_batch_duration_seconds,
    notification_batch_items_total,
)
from notification_service.features.notifications.settle import settle_all
from notification_service.features.notifications.types import NotificationType

if TYPE_CHECKING:
    from notification_service.features.notifications.dispatcher import DispatchRouter
    from notification_service.features.notifications.preferences import PreferenceStore
    from notification_service.features.notifications.schemas import NotificationPreferences


@dataclass(slots=True, frozen=True)
class BatchItem:
    """One notification in a batch."""

    user_id: str
    notification_type: NotificationType | str
    payload: dict[str, Any]


@dataclass
class BatchReport:
    """Counters for a batch send."""

    submitted: int = 0
    dropped: int = 0
    processed: int = 0
    failed: int = 0
    chunks: int = 0


def _chunked(items: list[BatchItem], size: int) -> list[list[BatchItem]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class BatchOrchestrator(BaseService):
    """Sends many notifications with bounded concurrency.

    Items are grouped by user so preferences are read once per user. A
    user whose preferences disable both channels for every type queued for
    them is dropped entirely. The rest are sent in chunks of ``chunk_size``;
    a chunk starts only after the previous one has settled. Individual
    failures are logged and counted, never raised.
    """

    def __init__(
        self,
        router: DispatchRouter,
        preferences: PreferenceStore,
        *,
        chunk_size: int = 100,
    ) -> None:
        super().__init__()
        if chunk_size < 1:
            msg = "chunk_size must be at least 1"
            raise ValueError(msg)
        self._router = router
        self._preferences = preferences
        self._chunk_size = chunk_size

    async def send_batch(self, notifications: Iterable[BatchItem]) -> BatchReport:
        """Dispatch every item and report how many went through."""
        started = time.perf_counter()
        items = list(notifications)
        report = BatchReport(submitted=len(items))
        if not items:
            return report

        grouped: dict[str, list[BatchItem]] = {}
        for item in items:
            grouped.setdefault(item.user_id, []).append(item)

        preferences = await self._preferences.get_many(list(grouped))
        eligible: list[BatchItem] = []
        for user_id, user_items in grouped.items():
            if self._wants_any(preferences[user_id], user_items):
                eligible.extend(user_items)
            else:
                report.dropped += len(user_items)
                self._lazy.debug(lambda: f"batch: dropping {len(user_items)} items for {user_id}")

        for chunk in _chunked(eligible, self._chunk_size):
            report.chunks += 1
            outcomes = await settle_all(
                self._router.send(item.user_id, item.notification_type, item.payload) for item in chunk
            )
            for item, outcome in zip(chunk, outcomes, strict=True):
                if outcome.ok:
                    report.processed += 1
                    continue
                report.failed += 1
                self.logger.warning(
                    "Batch item failed",
                    extra={
                        "user_id": item.user_id,
                        "notification_type": str(item.notification_type),
                        "error": repr(outcome.error),
                    },
                )

        notification_batch_items_total.labels(status="processed").inc(report.processed)
        notification_batch_items_total.labels(status="failed").inc(report.failed)
        notification_batch_items_total.labels(status="dropped").inc(report.dropped)
        notification_batch_duration_seconds.observe(time.perf_counter() - started)

        self.logger.info(
            "Batch send completed",
            extra={
                "submitted": report.submitted,
                "dropped": report.dropped,
                "processed": report.processed,
                "failed": report.failed,
                "chunks": report.chunks,
            },
        )
        return report

    @staticmethod
    def _wants_any(preferences: NotificationPreferences, items: list[BatchItem]) -> bool:
        types: set[NotificationType] = set()
        for item in items:
            try:
                types.add(parse_notification_type(item.notification_type))
            except NotificationValidationError:
                # Rejected by the router and counted as a failed item
                return True
        return preferences.push.any_enabled(types) or preferences.email.any_enabled(types)


__all__ = ["BatchItem", "BatchOrchestrator", "BatchReport"]
