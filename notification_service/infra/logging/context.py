"""Context management for structured logging.

Log context lives in a ContextVar, so every asyncio task sees its own copy.
A dispatch sets ``user_id`` and ``notification_type`` once and every record
emitted while handling it carries those fields, including records from
repositories and transports that know nothing about the caller.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Add fields to the logging context of the current task.

    Example:
        ```python
        set_log_context(user_id="u-42", notification_type="goal-reached")
        logger.info("Dispatching")  # record carries user_id and notification_type
        ```
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def get_log_context() -> dict[str, Any]:
    """Return a copy of the current logging context."""
    return _log_context.get().copy()


def clear_log_context() -> None:
    """Drop every field from the current logging context."""
    _log_context.set({})


def remove_from_log_context(*keys: str) -> None:
    """Remove specific keys from the logging context."""
    current = _log_context.get().copy()
    for key in keys:
        current.pop(key, None)
    _log_context.set(current)


class ContextInjectingFilter(logging.Filter):
    """Copy the contextvar log context onto every LogRecord.

    Installed on the root logger by ``configure_logging`` so formatters
    (JSONFormatter in particular) see the fields without callers passing
    ``extra=`` explicitly. Existing record attributes are never overwritten.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class ContextBoundLogger(logging.LoggerAdapter):
    """Logger adapter with permanently bound fields.

    Example:
        ```python
        logger = get_logger(__name__, component="push")
        endpoint_logger = logger.bind(subscription_id=str(sub.id))
        endpoint_logger.warning("Push delivery failed")
        ```
    """

    def __init__(self, logger: logging.Logger, **context: Any) -> None:
        super().__init__(logger, context)

    def bind(self, **context: Any) -> ContextBoundLogger:
        """Return a new logger carrying the current and the given fields."""
        return ContextBoundLogger(self.logger, **{**self.extra, **context})

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = kwargs.get("extra", {})
        kwargs["extra"] = {**self.extra, **extra}
        return msg, kwargs


def get_logger(name: str, **context: Any) -> ContextBoundLogger:
    """Get a logger with bound context.

    Args:
        name: Logger name, usually ``__name__``.
        **context: Fields added to every record from this logger.

    Returns:
        ContextBoundLogger wrapping ``logging.getLogger(name)``.
    """
    return ContextBoundLogger(logging.getLogger(name), **context)
