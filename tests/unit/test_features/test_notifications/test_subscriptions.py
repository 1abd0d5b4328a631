"""Tests for the push subscription registry."""

from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from notification_service.features.notifications.subscriptions import SubscriptionRegistry

ENDPOINT = "https://fcm.googleapis.com/fcm/send/abc123"
OTHER_ENDPOINT = "https://updates.push.services.mozilla.com/wpush/v2/xyz"


@pytest.fixture
def registry(session_factory) -> SubscriptionRegistry:
    return SubscriptionRegistry(session_factory)


class TestRegister:
    async def test_register_and_list(self, registry: SubscriptionRegistry) -> None:
        created = await registry.register("u-1", ENDPOINT, "p256dh-key", "auth-key")

        subscriptions = await registry.list("u-1")

        assert [s.id for s in subscriptions] == [created.id]
        assert subscriptions[0].subscription_info() == {
            "endpoint": ENDPOINT,
            "keys": {"p256dh": "p256dh-key", "auth": "auth-key"},
        }

    async def test_reregistering_refreshes_keys(self, registry: SubscriptionRegistry) -> None:
        first = await registry.register("u-1", ENDPOINT, "old-p256dh", "old-auth")
        second = await registry.register("u-1", ENDPOINT, "new-p256dh", "new-auth")

        subscriptions = await registry.list("u-1")

        assert second.id == first.id
        assert len(subscriptions) == 1
        assert subscriptions[0].p256dh_key == "new-p256dh"
        assert subscriptions[0].auth_key == "new-auth"

    async def test_same_endpoint_for_two_users(self, registry: SubscriptionRegistry) -> None:
        await registry.register("u-1", ENDPOINT, "k", "a")
        await registry.register("u-2", ENDPOINT, "k", "a")

        assert len(await registry.list("u-1")) == 1
        assert len(await registry.list("u-2")) == 1

    async def test_list_is_oldest_first(self, registry: SubscriptionRegistry) -> None:
        first = await registry.register("u-1", ENDPOINT, "k", "a")
        second = await registry.register("u-1", OTHER_ENDPOINT, "k", "a")

        assert [s.id for s in await registry.list("u-1")] == [first.id, second.id]


class TestRemove:
    """Removal is idempotent so concurrent expiry cleanups never fail."""

    async def test_remove(self, registry: SubscriptionRegistry) -> None:
        created = await registry.register("u-1", ENDPOINT, "k", "a")

        assert await registry.remove(created.id) is True
        assert await registry.list("u-1") == []
        assert await registry.get(created.id) is None

    async def test_remove_unknown_id_is_noop(self, registry: SubscriptionRegistry) -> None:
        assert await registry.remove(uuid4()) is False

    async def test_remove_twice(self, registry: SubscriptionRegistry) -> None:
        created = await registry.register("u-1", ENDPOINT, "k", "a")

        assert await registry.remove(created.id) is True
        assert await registry.remove(created.id) is False

    async def test_concurrent_removal(self, registry: SubscriptionRegistry) -> None:
        created = await registry.register("u-1", ENDPOINT, "k", "a")

        results = await asyncio.gather(*(registry.remove(created.id) for _ in range(5)))

        assert results.count(True) == 1
        assert await registry.list("u-1") == []

    async def test_remove_for_user(self, registry: SubscriptionRegistry) -> None:
        await registry.register("u-1", ENDPOINT, "k", "a")
        await registry.register("u-2", ENDPOINT, "k", "a")

        assert await registry.remove_for_user("u-1", ENDPOINT) is True
        assert await registry.list("u-1") == []
        assert len(await registry.list("u-2")) == 1
