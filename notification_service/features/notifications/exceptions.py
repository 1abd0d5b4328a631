"""Exceptions raised by the notification engine.

Only validation errors reach callers of the send operations. Transport
failures are caught and logged by the dispatch router, and an expired
subscription is an internal signal that turns into registry cleanup.
"""

from __future__ import annotations

from typing import Any

from notification_service.core.exceptions import BadGatewayException, ValidationException


class NotificationValidationError(ValidationException):
    """Unknown notification type, unknown preference key or malformed payload."""

    def __init__(
        self,
        detail: str,
        *,
        field: str | None = None,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        extra: dict[str, Any] = {}
        if field is not None:
            extra["field"] = field
        if errors:
            extra["errors"] = errors
        self.field = field
        self.errors = errors or []
        super().__init__(detail, type="notification-validation-error", extra=extra)


class TransportError(BadGatewayException):
    """A push or email delivery failed for a reason other than a gone endpoint."""

    def __init__(
        self,
        detail: str,
        *,
        channel: str,
        status_code: int | None = None,
    ) -> None:
        self.channel = channel
        self.upstream_status = status_code
        super().__init__(
            detail,
            type="notification-transport-error",
            extra={"channel": channel, "upstream_status": status_code},
        )


class ExpiredSubscriptionError(Exception):
    """The push service reported the endpoint as permanently gone."""

    def __init__(self, endpoint: str, status_code: int | None = None) -> None:
        self.endpoint = endpoint
        self.status_code = status_code
        super().__init__(f"Push subscription gone: {endpoint[:60]}")


__all__ = [
    "ExpiredSubscriptionError",
    "NotificationValidationError",
    "TransportError",
]
