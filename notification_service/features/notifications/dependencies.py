"""FastAPI dependencies for the notifications feature.

Provides Annotated type aliases for clean dependency injection in route handlers.

Example usage:
    from notification_service.features.notifications.dependencies import (
        CurrentUserIdDep,
        NotificationServiceDep,
    )

    @router.get("/history")
    async def list_history(user_id: CurrentUserIdDep, service: NotificationServiceDep):
        return await service.list_history(user_id)
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header

from notification_service.core.exceptions import UnauthorizedException
from notification_service.core.settings import PushSettings, get_push_settings
from notification_service.features.notifications.service import (
    NotificationService,
    get_notification_service,
)


def get_current_user_id(
    x_user_id: Annotated[str | None, Header(alias="X-User-Id")] = None,
) -> str:
    """User id supplied by the identity provider in front of this service.

    Raises:
        UnauthorizedException: Header missing or blank
    """
    if x_user_id is None or not x_user_id.strip():
        raise UnauthorizedException(
            detail="Missing X-User-Id header",
            type="missing-user-id",
        )
    return x_user_id.strip()


# Type alias for current user ID
CurrentUserIdDep = Annotated[str, Depends(get_current_user_id)]

# Service dependencies
NotificationServiceDep = Annotated[
    NotificationService,
    Depends(get_notification_service),
]

# Settings dependencies
PushSettingsDep = Annotated[PushSettings, Depends(get_push_settings)]


__all__ = [
    "CurrentUserIdDep",
    "NotificationServiceDep",
    "PushSettingsDep",
    "get_current_user_id",
]
