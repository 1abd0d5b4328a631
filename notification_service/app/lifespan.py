"""Application lifespan management.

Startup order:
1. Logging
2. Database (tables created when DB_CREATE_TABLES is set)
3. Digest scheduler (only when NOTIFY_DIGEST_ENABLED is set)

Shutdown runs in reverse.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from notification_service.core.settings import get_db_settings, get_logging_settings, get_notification_settings
from notification_service.features.notifications.service import (
    get_notification_service,
    reset_notification_service,
)
from notification_service.infra.database import close_database, init_database
from notification_service.infra.logging import setup_logging
from notification_service.infra.logging import shutdown as shutdown_logging

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start and stop the service's resources."""
    log_settings = get_logging_settings()
    setup_logging(log_settings=log_settings, force=True)
    logger.info(
        "Application starting",
        extra={"service": log_settings.service_name, "version": app.version},
    )

    await init_database()
    logger.info("Database initialized", extra={"sqlite": get_db_settings().is_sqlite})

    notify_settings = get_notification_settings()
    scheduler = None
    if notify_settings.digest_enabled:
        scheduler = get_notification_service().context.scheduler
        scheduler.start()

    try:
        yield
    finally:
        if scheduler is not None:
            await scheduler.stop()
        reset_notification_service()
        await close_database()
        logger.info("Application stopped")
        shutdown_logging()
