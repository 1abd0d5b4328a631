"""Async database engine and session management."""

from __future__ import annotations

from .session import (
    build_engine,
    build_session_factory,
    close_database,
    get_engine,
    get_session_factory,
    init_database,
)

__all__ = [
    "build_engine",
    "build_session_factory",
    "close_database",
    "get_engine",
    "get_session_factory",
    "init_database",
]
