"""Transport protocols and result types for delivery channels."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from notification_service.features.notifications.types import PushOutcome

if TYPE_CHECKING:
    from notification_service.features.notifications.formatter import EmailContent, PushContent
    from notification_service.features.notifications.models import PushSubscription


@dataclass
class DeliveryResult:
    """Result of a single transport call.

    Attributes:
        outcome: ok, expired (endpoint gone) or error
        status_code: HTTP status returned by the upstream service, if any
        response_time_ms: Time taken for delivery in milliseconds
        error_message: Error description if the call failed
    """

    outcome: PushOutcome
    status_code: int | None = None
    response_time_ms: int | None = None
    error_message: str | None = None

    @property
    def success(self) -> bool:
        """Whether the upstream accepted the message."""
        return self.outcome is PushOutcome.OK


class PushTransport(Protocol):
    """Delivers a push payload to one registered endpoint."""

    async def send_to_endpoint(
        self,
        subscription: PushSubscription,
        push: PushContent,
        *,
        urgent: bool = False,
    ) -> DeliveryResult:
        """Send ``push`` to ``subscription``.

        Never raises for delivery failures; the outcome is reported in the
        result so the caller can clean up expired endpoints.
        """
        ...


class EmailTransport(Protocol):
    """Hands a formatted email to the external composer."""

    async def send(self, user_id: str, email: EmailContent) -> DeliveryResult:
        """Send ``email`` to ``user_id``.

        Raises:
            TransportError: The composer rejected the request or was unreachable
        """
        ...


__all__ = ["DeliveryResult", "EmailTransport", "PushTransport"]
