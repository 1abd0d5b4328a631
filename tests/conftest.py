"""Pytest configuration and shared fixtures.

Organization:
    - Database Fixtures: file-backed SQLite engine and session factory
    - Transport Fixtures: push and email transports replaced by mocks
    - Engine Fixtures: clock, settings, wired notification context and service
    - Application Fixtures: FastAPI app and HTTP client

Every test gets its own SQLite file under ``tmp_path``. A file (rather than
``:memory:``) lets concurrent dispatches open independent connections.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from notification_service.core.database import Base
from notification_service.core.settings import NotificationSettings
from notification_service.features.notifications import models  # noqa: F401
from notification_service.features.notifications.channels import DeliveryResult
from notification_service.features.notifications.context import build_notification_context
from notification_service.features.notifications.service import NotificationService, get_notification_service
from notification_service.features.notifications.types import PushOutcome
from notification_service.infra.database.session import build_session_factory
from tests.helpers import FrozenClock

# Keep tests away from real infrastructure
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DB_CREATE_TABLES", "false")
os.environ.setdefault("NOTIFY_DIGEST_ENABLED", "false")
os.environ.setdefault("LOG_FILE_PATH", "")

if TYPE_CHECKING:
    from fastapi import FastAPI
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

    from notification_service.features.notifications.context import NotificationContext


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine]:
    """Async engine on a fresh SQLite file with every table created.

    Yields:
        Async SQLAlchemy engine; disposed after the test.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'notifications.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory configured like the application's."""
    return build_session_factory(db_engine)


# ============================================================================
# Transport Fixtures
# ============================================================================


@pytest.fixture
def push_transport() -> AsyncMock:
    """Push transport that reports every delivery as accepted.

    Example:
        async def test_gone(push_transport):
            push_transport.send_to_endpoint.return_value = DeliveryResult(outcome=PushOutcome.EXPIRED)
    """
    transport = AsyncMock()
    transport.send_to_endpoint.return_value = DeliveryResult(outcome=PushOutcome.OK, status_code=201)
    return transport


@pytest.fixture
def email_transport() -> AsyncMock:
    """Email transport that accepts every message."""
    transport = AsyncMock()
    transport.send.return_value = DeliveryResult(outcome=PushOutcome.OK, status_code=202)
    return transport


# ============================================================================
# Engine Fixtures
# ============================================================================


@pytest.fixture
def clock() -> FrozenClock:
    """Clock frozen at Monday 2025-06-02 12:00 UTC."""
    return FrozenClock()


@pytest.fixture
def notification_settings() -> NotificationSettings:
    return NotificationSettings(app_url="https://app.test", batch_size=10, digest_daily_hour=9)


@pytest.fixture
def context(
    session_factory: async_sessionmaker[AsyncSession],
    push_transport: AsyncMock,
    email_transport: AsyncMock,
    clock: FrozenClock,
    notification_settings: NotificationSettings,
) -> NotificationContext:
    """Fully wired engine on the test database with mocked transports."""
    return build_notification_context(
        session_factory,
        push_transport=push_transport,
        email_transport=email_transport,
        clock=clock,
        settings=notification_settings,
    )


@pytest.fixture
def service(context: NotificationContext) -> NotificationService:
    return NotificationService(context)


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def app(service: NotificationService) -> FastAPI:
    """FastAPI application whose notification service runs on the test database."""
    from notification_service.app.main import create_app

    application = create_app()
    application.dependency_overrides[get_notification_service] = lambda: service
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """HTTP client bound to the test application.

    Example:
        async def test_preferences(client):
            response = await client.get("/notifications/preferences", headers={"X-User-Id": "u-1"})
            assert response.status_code == 200
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
