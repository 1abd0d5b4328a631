"""Tests for the HTTP email transport."""

from __future__ import annotations

import json

import httpx
import pytest

from notification_service.core.settings import EmailSettings
from notification_service.features.notifications.channels import HttpEmailTransport
from notification_service.features.notifications.exceptions import TransportError
from notification_service.features.notifications.formatter import EmailContent

COMPOSER_URL = "https://mailer.test/send-email"


@pytest.fixture
def settings() -> EmailSettings:
    return EmailSettings(service_url=COMPOSER_URL, api_key="secret-token", timeout=2.0)


@pytest.fixture
def email() -> EmailContent:
    return EmailContent(
        subject="New donation to Clean Water",
        template_name="donation",
        template_data={"amount": "$25.00", "action_url": "https://app.test/campaigns/c-1"},
        text="Jane has donated $25.00",
        categories=["donation", "transactional"],
    )


def _transport(settings: EmailSettings, handler) -> HttpEmailTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpEmailTransport(settings, client=client)


class TestSend:
    async def test_posts_template_and_data(self, settings, email) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(202, json={"queued": True})

        result = await _transport(settings, handler).send("u-1", email)

        assert result.success is True
        assert result.status_code == 202
        request = captured[0]
        assert str(request.url) == COMPOSER_URL
        assert request.headers["Authorization"] == "Bearer secret-token"
        body = json.loads(request.content)
        assert body["user_id"] == "u-1"
        assert body["template"] == "donation"
        assert body["template_data"]["action_url"] == "https://app.test/campaigns/c-1"
        assert body["categories"] == ["donation", "transactional"]
        assert body["from"] == {"email": settings.from_email, "name": settings.from_name}

    async def test_no_auth_header_without_key(self, email) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200)

        await _transport(EmailSettings(service_url=COMPOSER_URL), handler).send("u-1", email)

        assert "Authorization" not in captured[0].headers


class TestFailures:
    async def test_error_status(self, settings, email) -> None:
        transport = _transport(settings, lambda request: httpx.Response(503))

        with pytest.raises(TransportError) as exc_info:
            await transport.send("u-1", email)

        assert exc_info.value.upstream_status == 503
        assert exc_info.value.channel == "email"

    async def test_network_error(self, settings, email) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportError, match="unreachable"):
            await _transport(settings, handler).send("u-1", email)

    async def test_timeout(self, settings, email) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(TransportError, match="timed out"):
            await _transport(settings, handler).send("u-1", email)
