"""Logging infrastructure.

Structured JSONL logging with automatic context injection, non-blocking
queue handlers and lazy evaluation for debug output.

Basic usage:
    from notification_service.infra.logging import get_lazy_logger, set_log_context
    import logging

    logger = logging.getLogger(__name__)
    set_log_context(user_id="u-42")
    logger.info("Dispatching")  # record includes user_id

    lazy_logger = get_lazy_logger(__name__)
    lazy_logger.debug(lambda: f"Payload: {payload!r}")  # only built when DEBUG is on
"""

from notification_service.infra.logging.config import (
    complete,
    configure_logging,
    setup_logging,
    shutdown,
)
from notification_service.infra.logging.context import (
    ContextBoundLogger,
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    get_logger,
    remove_from_log_context,
    set_log_context,
)
from notification_service.infra.logging.formatters import JSONFormatter
from notification_service.infra.logging.lazy import (
    LazyLoggerAdapter,
    get_lazy_logger,
)

__all__ = [
    "ContextBoundLogger",
    "ContextInjectingFilter",
    "JSONFormatter",
    "LazyLoggerAdapter",
    "clear_log_context",
    "complete",
    "configure_logging",
    "get_lazy_logger",
    "get_log_context",
    "get_logger",
    "remove_from_log_context",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
