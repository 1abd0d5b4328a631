"""API router for the notifications feature.

Sending (called by other backend services):
- POST /notifications/send - Dispatch one notification
- POST /notifications/send/batch - Dispatch many notifications

User endpoints (caller identified by the X-User-Id header):
- GET /notifications/preferences - Current preferences (defaults if never saved)
- PATCH /notifications/preferences - Partial update
- GET /notifications/history - History, most recent first
- GET /notifications/history/unread-count - Unread counter
- POST /notifications/history/{entry_id}/read - Mark one entry read
- POST /notifications/history/read-all - Mark everything read
- DELETE /notifications/history/{entry_id} - Delete one entry
- GET /notifications/subscriptions/vapid-public-key - Key browsers need to subscribe
- GET /notifications/subscriptions - Registered push endpoints
- POST /notifications/subscriptions - Register or refresh a push endpoint
- DELETE /notifications/subscriptions/{subscription_id} - Revoke a push endpoint
- DELETE /notifications/subscriptions?endpoint=... - Revoke by browser endpoint URL
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from notification_service.features.notifications.batch import BatchItem
from notification_service.features.notifications.dependencies import (
    CurrentUserIdDep,
    NotificationServiceDep,
    PushSettingsDep,
)
from notification_service.features.notifications.schemas import (
    BatchNotificationRequest,
    BatchResponse,
    DispatchResponse,
    HistoryEntryResponse,
    HistoryFilter,
    HistoryListResponse,
    MarkAllReadResponse,
    NotificationPreferences,
    PreferencesUpdate,
    SendNotificationRequest,
    SubscriptionCreate,
    SubscriptionResponse,
    UnreadCountResponse,
    VapidPublicKeyResponse,
)
from notification_service.features.notifications.types import NotificationType
from notification_service.infra.logging import get_lazy_logger

lazy_logger = get_lazy_logger(__name__)

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
)


# ============================================================================
# Sending
# ============================================================================


@router.post(
    "/send",
    response_model=DispatchResponse,
    summary="Dispatch a notification",
    description="""
Send one notification to one user.

A history entry is always recorded. Push is skipped when disabled for the
type or during quiet hours; email is sent immediately, or queued for the
user's digest when the type is not urgent and the user prefers digests.
""",
    responses={422: {"description": "Unknown type or malformed payload"}},
)
async def send_notification(
    request: SendNotificationRequest,
    service: NotificationServiceDep,
) -> DispatchResponse:
    """Dispatch one notification."""
    report = await service.send_notification(request.user_id, request.type, request.payload)
    return DispatchResponse.model_validate(report)


@router.post(
    "/send/batch",
    response_model=BatchResponse,
    summary="Dispatch notifications in bulk",
    description="""
Send many notifications with bounded concurrency.

Items for users who disabled every channel for the queued types are
dropped. Individual failures are counted, never returned as errors.
""",
)
async def send_batch(
    request: BatchNotificationRequest,
    service: NotificationServiceDep,
) -> BatchResponse:
    """Dispatch a batch of notifications."""
    report = await service.send_batch_notifications(
        BatchItem(user_id=item.user_id, notification_type=item.type, payload=item.payload)
        for item in request.notifications
    )
    return BatchResponse.model_validate(report)


# ============================================================================
# Preferences
# ============================================================================


@router.get(
    "/preferences",
    response_model=NotificationPreferences,
    summary="Get notification preferences",
)
async def get_preferences(
    user_id: CurrentUserIdDep,
    service: NotificationServiceDep,
) -> NotificationPreferences:
    """Return the caller's preferences."""
    return await service.get_preferences(user_id)


@router.patch(
    "/preferences",
    response_model=NotificationPreferences,
    summary="Update notification preferences",
    description="""
Merge the given fields into the caller's preferences. Channel maps may be
partial, e.g. `{"email": {"campaign-update": false}}`. Unknown keys are
rejected.
""",
    responses={422: {"description": "Unknown key or malformed value"}},
)
async def update_preferences(
    update: PreferencesUpdate,
    user_id: CurrentUserIdDep,
    service: NotificationServiceDep,
) -> NotificationPreferences:
    """Partially update the caller's preferences."""
    return await service.update_preferences(user_id, update)


# ============================================================================
# History
# ============================================================================


@router.get(
    "/history",
    response_model=HistoryListResponse,
    summary="List notification history",
)
async def list_history(
    user_id: CurrentUserIdDep,
    service: NotificationServiceDep,
    notification_type: Annotated[
        NotificationType | None,
        Query(alias="type", description="Filter by notification type"),
    ] = None,
    unread_only: Annotated[bool, Query(description="Only return unread entries")] = False,
    limit: Annotated[int, Query(ge=1, le=500, description="Maximum results")] = 50,
    offset: Annotated[int, Query(ge=0, description="Pagination offset")] = 0,
) -> HistoryListResponse:
    """List the caller's history, most recent first."""
    filters = HistoryFilter(
        notification_type=notification_type,
        unread_only=unread_only,
        limit=limit,
        offset=offset,
    )
    entries = await service.list_history(user_id, filters)
    unread_count = await service.unread_count(user_id)
    return HistoryListResponse(
        items=[HistoryEntryResponse.model_validate(entry) for entry in entries],
        unread_count=unread_count,
    )


@router.get(
    "/history/unread-count",
    response_model=UnreadCountResponse,
    summary="Count unread history entries",
)
async def get_unread_count(
    user_id: CurrentUserIdDep,
    service: NotificationServiceDep,
) -> UnreadCountResponse:
    """Return the caller's unread counter."""
    return UnreadCountResponse(unread_count=await service.unread_count(user_id))


@router.post(
    "/history/read-all",
    response_model=MarkAllReadResponse,
    summary="Mark all history entries read",
)
async def mark_all_read(
    user_id: CurrentUserIdDep,
    service: NotificationServiceDep,
) -> MarkAllReadResponse:
    """Mark every unread entry of the caller read."""
    return MarkAllReadResponse(updated=await service.mark_all_read(user_id))


@router.post(
    "/history/{entry_id}/read",
    response_model=HistoryEntryResponse,
    summary="Mark a history entry read",
    responses={404: {"description": "History entry not found"}},
)
async def mark_read(
    entry_id: UUID,
    user_id: CurrentUserIdDep,
    service: NotificationServiceDep,
) -> HistoryEntryResponse:
    """Mark one of the caller's entries read."""
    entry = await service.mark_read(entry_id, user_id=user_id)
    return HistoryEntryResponse.model_validate(entry)


@router.delete(
    "/history/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a history entry",
    responses={404: {"description": "History entry not found"}},
)
async def delete_history_entry(
    entry_id: UUID,
    user_id: CurrentUserIdDep,
    service: NotificationServiceDep,
) -> Response:
    """Delete one of the caller's entries."""
    await service.delete_history_entry(entry_id, user_id=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Push subscriptions
# ============================================================================


@router.get(
    "/subscriptions/vapid-public-key",
    response_model=VapidPublicKeyResponse,
    summary="Get the VAPID public key",
)
async def get_vapid_public_key(push_settings: PushSettingsDep) -> VapidPublicKeyResponse:
    """Return the application server key for ``PushManager.subscribe``."""
    return VapidPublicKeyResponse(public_key=push_settings.vapid_public_key)


@router.get(
    "/subscriptions",
    response_model=list[SubscriptionResponse],
    summary="List push subscriptions",
)
async def list_subscriptions(
    user_id: CurrentUserIdDep,
    service: NotificationServiceDep,
) -> list[SubscriptionResponse]:
    """List the caller's push endpoints, oldest first."""
    subscriptions = await service.list_subscriptions(user_id)
    return [SubscriptionResponse.model_validate(sub) for sub in subscriptions]


@router.post(
    "/subscriptions",
    response_model=SubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a push subscription",
    description="Registering an endpoint the caller already holds refreshes its keys and expiry.",
)
async def register_subscription(
    subscription: SubscriptionCreate,
    user_id: CurrentUserIdDep,
    service: NotificationServiceDep,
) -> SubscriptionResponse:
    """Register the browser's push subscription."""
    registered = await service.register_subscription(
        user_id,
        subscription.endpoint,
        subscription.keys.p256dh,
        subscription.keys.auth,
        subscription.expires_at,
    )
    lazy_logger.debug(lambda: f"registered subscription {registered.id} for {user_id}")
    return SubscriptionResponse.model_validate(registered)


@router.delete(
    "/subscriptions",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Revoke a push subscription by endpoint",
    description="Used after `PushSubscription.unsubscribe()` in the browser, which only knows the endpoint URL.",
)
async def unsubscribe_endpoint(
    endpoint: Annotated[str, Query(min_length=1, description="Push service endpoint URL")],
    user_id: CurrentUserIdDep,
    service: NotificationServiceDep,
) -> Response:
    """Revoke the caller's subscription for ``endpoint``."""
    await service.unsubscribe_endpoint(user_id, endpoint)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/subscriptions/{subscription_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Revoke a push subscription",
    description="Idempotent: unknown ids return 204 as well.",
)
async def remove_subscription(
    subscription_id: UUID,
    user_id: CurrentUserIdDep,
    service: NotificationServiceDep,
) -> Response:
    """Revoke one of the caller's push endpoints."""
    await service.remove_subscription(subscription_id, user_id=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
