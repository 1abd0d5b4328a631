"""Tests for batch fan-out and the settle-all primitive."""

from __future__ import annotations

import asyncio
import itertools
from unittest.mock import MagicMock

import pytest

from notification_service.features.notifications.batch import BatchItem, BatchOrchestrator
from notification_service.features.notifications.exceptions import TransportError
from notification_service.features.notifications.settle import settle_all
from notification_service.features.notifications.types import NotificationType
from tests.helpers import make_payload

ALL_OFF = {
    "push": {t.value: False for t in NotificationType},
    "email": {t.value: False for t in NotificationType},
}


# ============================================================================
# settle_all
# ============================================================================


class TestSettleAll:
    async def test_keeps_order_and_errors(self) -> None:
        async def ok(value: int) -> int:
            await asyncio.sleep(0.01 * (3 - value))
            return value

        async def boom() -> int:
            raise ValueError("boom")

        results = await settle_all([ok(1), boom(), ok(2)])

        assert [r.ok for r in results] == [True, False, True]
        assert results[0].value == 1
        assert results[2].value == 2
        assert isinstance(results[1].error, ValueError)

    async def test_failure_does_not_cancel_others(self) -> None:
        finished: list[str] = []

        async def slow() -> None:
            await asyncio.sleep(0.02)
            finished.append("slow")

        async def fail() -> None:
            raise RuntimeError("fail")

        await settle_all([fail(), slow()])

        assert finished == ["slow"]

    async def test_empty(self) -> None:
        assert await settle_all([]) == []


# ============================================================================
# BatchOrchestrator
# ============================================================================


class TestBatchCompleteness:
    @pytest.mark.slow
    async def test_partial_push_failures_do_not_stop_the_batch(self, context, push_transport) -> None:
        """250 notifications for 30 users with every tenth push failing."""
        users = [f"user-{n:02d}" for n in range(30)]
        for user_id in users:
            await context.subscriptions.register(user_id, f"https://push.example.com/{user_id}", "k", "a")

        calls = itertools.count(1)

        async def flaky_push(subscription, push, *, urgent=False):
            if next(calls) % 10 == 0:
                raise TransportError("push service unavailable", channel="push", status_code=503)
            return push_transport.send_to_endpoint.return_value

        push_transport.send_to_endpoint.side_effect = flaky_push
        orchestrator = BatchOrchestrator(context.router, context.preferences, chunk_size=100)
        items = [
            BatchItem(users[n % 30], NotificationType.CAMPAIGN_UPDATE, make_payload("campaign-update"))
            for n in range(250)
        ]

        report = await orchestrator.send_batch(items)

        assert report.submitted == 250
        assert report.processed == 250
        assert report.failed == 0
        assert report.chunks == 3
        assert push_transport.send_to_endpoint.await_count == 250
        total = sum([await context.history.unread_count(user_id) for user_id in users])
        assert total == 250

    async def test_invalid_items_are_counted_not_raised(self, context) -> None:
        orchestrator = BatchOrchestrator(context.router, context.preferences, chunk_size=2)
        items = [
            BatchItem("u-1", "goal-reached", make_payload("goal-reached")),
            BatchItem("u-1", "goal-reached", {"campaign_id": "c-1"}),
            BatchItem("u-2", "campaign-deleted", {}),
            BatchItem("u-2", "campaign-update", make_payload("campaign-update")),
        ]

        report = await orchestrator.send_batch(items)

        assert report.processed == 2
        assert report.failed == 2
        assert report.chunks == 2
        assert await context.history.unread_count("u-1") == 1
        assert await context.history.unread_count("u-2") == 1


class TestPreferenceFilter:
    async def test_users_with_everything_off_are_dropped(self, context, email_transport) -> None:
        await context.preferences.update("muted", ALL_OFF)
        orchestrator = BatchOrchestrator(context.router, context.preferences)
        items = [
            BatchItem("muted", "campaign-update", make_payload("campaign-update")),
            BatchItem("muted", "goal-reached", make_payload("goal-reached")),
            BatchItem("listener", "campaign-update", make_payload("campaign-update")),
        ]

        report = await orchestrator.send_batch(items)

        assert report.dropped == 2
        assert report.processed == 1
        assert await context.history.list("muted") == []
        assert await context.history.unread_count("listener") == 1
        email_transport.send.assert_awaited_once()

    async def test_one_enabled_channel_keeps_the_user(self, context) -> None:
        await context.preferences.update("push-only", {**ALL_OFF, "push": {"campaign-update": True}})
        orchestrator = BatchOrchestrator(context.router, context.preferences)

        report = await orchestrator.send_batch(
            [BatchItem("push-only", "campaign-update", make_payload("campaign-update"))],
        )

        assert report.dropped == 0
        assert report.processed == 1


class TestChunking:
    async def test_chunks_run_one_after_another(self, context) -> None:
        in_flight = 0
        peak = 0

        async def send(user_id, notification_type, payload):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1

        router = MagicMock()
        router.send.side_effect = send
        orchestrator = BatchOrchestrator(router, context.preferences, chunk_size=3)

        report = await orchestrator.send_batch(
            BatchItem(f"u-{n}", "campaign-update", make_payload("campaign-update")) for n in range(7)
        )

        assert report.chunks == 3
        assert report.processed == 7
        assert peak == 3

    async def test_failed_chunk_does_not_stop_later_chunks(self, context) -> None:
        async def send(user_id, notification_type, payload):
            if user_id == "u-0":
                raise RuntimeError("database gone")

        router = MagicMock()
        router.send.side_effect = send
        orchestrator = BatchOrchestrator(router, context.preferences, chunk_size=1)

        report = await orchestrator.send_batch(
            BatchItem(f"u-{n}", "campaign-update", make_payload("campaign-update")) for n in range(3)
        )

        assert report.failed == 1
        assert report.processed == 2
        assert router.send.call_count == 3

    async def test_empty_batch(self, context) -> None:
        report = await BatchOrchestrator(context.router, context.preferences).send_batch([])

        assert report.submitted == 0
        assert report.chunks == 0

    def test_chunk_size_must_be_positive(self, context) -> None:
        with pytest.raises(ValueError, match="chunk_size"):
            BatchOrchestrator(context.router, context.preferences, chunk_size=0)
