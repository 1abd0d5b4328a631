"""Typed, environment-driven settings.

Each concern has a frozen BaseSettings model with its own env prefix
(APP_, LOG_, DB_, NOTIFY_, PUSH_, EMAIL_) and an lru_cache loader.
"""

from __future__ import annotations

from .app import AppSettings
from .database import DatabaseSettings
from .email import EmailSettings
from .loader import (
    clear_all_caches,
    get_app_settings,
    get_db_settings,
    get_email_settings,
    get_logging_settings,
    get_notification_settings,
    get_push_settings,
)
from .logs import LoggingSettings
from .notifications import NotificationSettings
from .push import PushSettings

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "EmailSettings",
    "LoggingSettings",
    "NotificationSettings",
    "PushSettings",
    "clear_all_caches",
    "get_app_settings",
    "get_db_settings",
    "get_email_settings",
    "get_logging_settings",
    "get_notification_settings",
    "get_push_settings",
]
