"""Email transport that delegates rendering to the external composer service."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import httpx

from notification_service.features.notifications.channels.base import DeliveryResult
from notification_service.features.notifications.exceptions import TransportError
from notification_service.features.notifications.metrics import notification_delivery_duration_seconds
from notification_service.features.notifications.types import Channel, PushOutcome
from notification_service.infra.logging import get_lazy_logger, get_logger

if TYPE_CHECKING:
    from notification_service.core.settings import EmailSettings
    from notification_service.features.notifications.formatter import EmailContent

logger = get_logger(__name__, channel=Channel.EMAIL.value)
lazy_logger = get_lazy_logger(__name__)


class HttpEmailTransport:
    """POSTs template name and data to the email composer.

    The composer resolves the recipient address from ``user_id``, renders
    the template and delivers the message.

    Args:
        settings: Composer URL, credentials and timeout
        client: Shared client; a short-lived one is opened per request when omitted
    """

    def __init__(self, settings: EmailSettings, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._client = client

    def build_request_body(self, user_id: str, email: EmailContent) -> dict[str, Any]:
        """JSON body sent to the composer."""
        return {
            "user_id": user_id,
            "subject": email.subject,
            "template": email.template_name,
            "template_data": email.template_data,
            "text": email.text,
            "categories": email.categories,
            "from": {"email": self._settings.from_email, "name": self._settings.from_name},
        }

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "User-Agent": "notification-service/1.0"}
        if self._settings.api_key is not None:
            headers["Authorization"] = f"Bearer {self._settings.api_key.get_secret_value()}"
        return headers

    async def send(self, user_id: str, email: EmailContent) -> DeliveryResult:
        """Send ``email`` to ``user_id``.

        Raises:
            TransportError: Non-2xx response, timeout or network failure
        """
        body = self.build_request_body(user_id, email)
        lazy_logger.debug(lambda: f"email.send: user_id={user_id}, template={email.template_name}")

        start_time = time.perf_counter()
        try:
            if self._client is not None:
                response = await self._post(self._client, body)
            else:
                async with httpx.AsyncClient(timeout=self._settings.timeout) as client:
                    response = await self._post(client, body)
        except httpx.TimeoutException as exc:
            msg = f"Email composer timed out after {self._settings.timeout}s"
            raise TransportError(msg, channel=Channel.EMAIL.value) from exc
        except httpx.RequestError as exc:
            msg = f"Email composer unreachable: {exc}"
            raise TransportError(msg, channel=Channel.EMAIL.value) from exc
        finally:
            notification_delivery_duration_seconds.labels(channel=Channel.EMAIL.value).observe(
                time.perf_counter() - start_time,
            )

        response_time_ms = int((time.perf_counter() - start_time) * 1000)
        if not response.is_success:
            msg = f"Email composer returned HTTP {response.status_code}"
            raise TransportError(msg, channel=Channel.EMAIL.value, status_code=response.status_code)

        logger.info(
            "Email handed to composer",
            extra={
                "user_id": user_id,
                "template": email.template_name,
                "status_code": response.status_code,
                "response_time_ms": response_time_ms,
            },
        )
        return DeliveryResult(
            outcome=PushOutcome.OK,
            status_code=response.status_code,
            response_time_ms=response_time_ms,
        )

    async def _post(self, client: httpx.AsyncClient, body: dict[str, Any]) -> httpx.Response:
        return await client.post(
            self._settings.service_url,
            json=body,
            headers=self._headers(),
            timeout=self._settings.timeout,
        )


__all__ = ["HttpEmailTransport"]
