"""LRU-cached settings loaders.

Settings are validated once and cached for the lifetime of the process.

Testing:
    Clear the cache to force a reload after changing environment variables:
    get_notification_settings.cache_clear()

    Or construct settings directly and pass them to the component under test:
    settings = NotificationSettings(batch_size=10)
"""

from __future__ import annotations

from functools import lru_cache

from .app import AppSettings
from .database import DatabaseSettings
from .email import EmailSettings
from .logs import LoggingSettings
from .notifications import NotificationSettings
from .push import PushSettings


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """Get cached application settings."""
    return AppSettings()


@lru_cache(maxsize=1)
def get_db_settings() -> DatabaseSettings:
    """Get cached database settings."""
    return DatabaseSettings()


@lru_cache(maxsize=1)
def get_email_settings() -> EmailSettings:
    """Get cached email composer settings."""
    return EmailSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings."""
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_notification_settings() -> NotificationSettings:
    """Get cached notification engine settings."""
    return NotificationSettings()


@lru_cache(maxsize=1)
def get_push_settings() -> PushSettings:
    """Get cached Web Push settings."""
    return PushSettings()


def clear_all_caches() -> None:
    """Clear every cached settings instance (tests and reloads)."""
    get_app_settings.cache_clear()
    get_db_settings.cache_clear()
    get_email_settings.cache_clear()
    get_logging_settings.cache_clear()
    get_notification_settings.cache_clear()
    get_push_settings.cache_clear()
