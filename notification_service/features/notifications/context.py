"""Wiring of the notification engine's collaborators."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from notification_service.core.database import utcnow
from notification_service.core.settings import (
    get_email_settings,
    get_notification_settings,
    get_push_settings,
)
from notification_service.features.notifications.batch import BatchOrchestrator
from notification_service.features.notifications.channels import HttpEmailTransport, WebPushTransport
from notification_service.features.notifications.digest import DigestQueue
from notification_service.features.notifications.dispatcher import DispatchRouter
from notification_service.features.notifications.formatter import NotificationFormatter
from notification_service.features.notifications.history import HistoryLedger
from notification_service.features.notifications.preferences import PreferenceStore
from notification_service.features.notifications.scheduler import DigestScheduler
from notification_service.features.notifications.subscriptions import SubscriptionRegistry

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from notification_service.core.settings import NotificationSettings
    from notification_service.features.notifications.channels import EmailTransport, PushTransport


@dataclass
class NotificationContext:
    """Every component of the engine, built once and shared."""

    settings: NotificationSettings
    formatter: NotificationFormatter
    preferences: PreferenceStore
    subscriptions: SubscriptionRegistry
    history: HistoryLedger
    digest: DigestQueue
    push_transport: PushTransport
    email_transport: EmailTransport
    router: DispatchRouter
    batch: BatchOrchestrator
    scheduler: DigestScheduler
    clock: Callable[[], datetime]


def build_notification_context(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    push_transport: PushTransport | None = None,
    email_transport: EmailTransport | None = None,
    clock: Callable[[], datetime] = utcnow,
    settings: NotificationSettings | None = None,
) -> NotificationContext:
    """Build the engine on top of ``session_factory``.

    Transports default to the web push and HTTP email implementations
    configured from the environment; tests pass fakes.
    """
    settings = settings or get_notification_settings()
    formatter = NotificationFormatter(app_url=settings.app_url)
    preferences = PreferenceStore(session_factory)
    subscriptions = SubscriptionRegistry(session_factory)
    history = HistoryLedger(session_factory, default_limit=settings.history_page_size)
    digest = DigestQueue(session_factory)
    push_transport = push_transport or WebPushTransport(get_push_settings(), settings)
    email_transport = email_transport or HttpEmailTransport(get_email_settings())

    router = DispatchRouter(
        formatter=formatter,
        preferences=preferences,
        subscriptions=subscriptions,
        history=history,
        digest=digest,
        push_transport=push_transport,
        email_transport=email_transport,
        clock=clock,
    )
    batch = BatchOrchestrator(router, preferences, chunk_size=settings.batch_size)
    scheduler = DigestScheduler(
        digest,
        email_transport,
        daily_hour=settings.digest_daily_hour,
        weekly_day=settings.digest_weekly_day,
        misfire_grace_seconds=settings.digest_misfire_grace_seconds,
    )
    return NotificationContext(
        settings=settings,
        formatter=formatter,
        preferences=preferences,
        subscriptions=subscriptions,
        history=history,
        digest=digest,
        push_transport=push_transport,
        email_transport=email_transport,
        router=router,
        batch=batch,
        scheduler=scheduler,
        clock=clock,
    )


__all__ = ["NotificationContext", "build_notification_context"]
