"""Tests for the web push transport."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from pywebpush import WebPushException

from notification_service.core.settings import NotificationSettings, PushSettings
from notification_service.features.notifications.channels import WebPushTransport
from notification_service.features.notifications.formatter import PushContent
from notification_service.features.notifications.models import PushSubscription
from notification_service.features.notifications.types import PushOutcome

WEBPUSH = "notification_service.features.notifications.channels.push.webpush"


@pytest.fixture
def subscription() -> PushSubscription:
    return PushSubscription(
        user_id="u-1",
        endpoint="https://fcm.googleapis.com/fcm/send/abc",
        p256dh_key="p256dh-key",
        auth_key="auth-key",
    )


@pytest.fixture
def push() -> PushContent:
    return PushContent(
        title="Campaign Ending Soon",
        body="Clean Water ends in 24 hours",
        icon="/icons/clock.png",
        data={"type": "campaign-ending", "url": "/campaigns/c-1"},
        actions=[{"action": "donate", "title": "Donate Now"}],
    )


@pytest.fixture
def transport() -> WebPushTransport:
    return WebPushTransport(
        PushSettings(vapid_private_key="private-key", vapid_claims_email="mailto:ops@example.com"),
        NotificationSettings(),
    )


def _gone(status_code: int) -> WebPushException:
    return WebPushException("Push failed", response=MagicMock(status_code=status_code))


class TestDelivery:
    async def test_ok(self, transport, subscription, push) -> None:
        with patch(WEBPUSH, return_value=MagicMock(status_code=201)) as webpush:
            result = await transport.send_to_endpoint(subscription, push, urgent=True)

        assert result.outcome is PushOutcome.OK
        assert result.status_code == 201
        assert result.response_time_ms is not None

        kwargs = webpush.call_args.kwargs
        assert kwargs["subscription_info"] == {
            "endpoint": "https://fcm.googleapis.com/fcm/send/abc",
            "keys": {"p256dh": "p256dh-key", "auth": "auth-key"},
        }
        assert kwargs["vapid_private_key"] == "private-key"
        assert kwargs["vapid_claims"] == {"sub": "mailto:ops@example.com"}
        assert kwargs["headers"] == {"Urgency": "high"}

        payload = json.loads(kwargs["data"])
        assert payload["title"] == "Campaign Ending Soon"
        assert payload["badge"] == NotificationSettings().badge
        assert payload["actions"] == [{"action": "donate", "title": "Donate Now"}]

    async def test_normal_urgency(self, transport, subscription, push) -> None:
        with patch(WEBPUSH, return_value=MagicMock(status_code=201)) as webpush:
            await transport.send_to_endpoint(subscription, push)

        assert webpush.call_args.kwargs["headers"] == {"Urgency": "normal"}


class TestOutcomes:
    @pytest.mark.parametrize("status_code", [404, 410])
    async def test_gone_endpoint_is_expired(self, transport, subscription, push, status_code: int) -> None:
        with patch(WEBPUSH, side_effect=_gone(status_code)):
            result = await transport.send_to_endpoint(subscription, push)

        assert result.outcome is PushOutcome.EXPIRED
        assert result.status_code == status_code

    async def test_server_error_is_transient(self, transport, subscription, push) -> None:
        with patch(WEBPUSH, side_effect=_gone(500)):
            result = await transport.send_to_endpoint(subscription, push)

        assert result.outcome is PushOutcome.ERROR
        assert result.status_code == 500

    async def test_network_error(self, transport, subscription, push) -> None:
        with patch(WEBPUSH, side_effect=ConnectionError("reset by peer")):
            result = await transport.send_to_endpoint(subscription, push)

        assert result.outcome is PushOutcome.ERROR
        assert "reset by peer" in result.error_message

    async def test_unconfigured_never_calls_push_service(self, subscription, push) -> None:
        transport = WebPushTransport(PushSettings(), NotificationSettings())

        with patch(WEBPUSH) as webpush:
            result = await transport.send_to_endpoint(subscription, push)

        assert result.outcome is PushOutcome.ERROR
        webpush.assert_not_called()
