"""Tests for digest email composition and the digest scheduler."""

from __future__ import annotations

import pytest

from notification_service.features.notifications.channels import DeliveryResult
from notification_service.features.notifications.digest import DigestItem
from notification_service.features.notifications.exceptions import TransportError
from notification_service.features.notifications.scheduler import (
    DAILY_JOB_ID,
    WEEKLY_JOB_ID,
    DigestScheduler,
    build_digest_email,
)
from notification_service.features.notifications.types import DigestFrequency, NotificationType, PushOutcome


@pytest.fixture
def scheduler(context, email_transport) -> DigestScheduler:
    return DigestScheduler(context.digest, email_transport, daily_hour=9, weekly_day=0)


async def _queue(context, user_id: str, frequency: str, count: int = 2) -> None:
    await context.preferences.update(user_id, {"digest_frequency": frequency})
    for n in range(count):
        await context.digest.enqueue(
            user_id,
            NotificationType.CAMPAIGN_UPDATE,
            DigestItem(title=f"Update {n}", body=f"body {n}", payload={"campaign_id": "c-1"}),
        )


class TestBuildDigestEmail:
    async def test_summary(self, context) -> None:
        await _queue(context, "u-1", "daily", count=2)
        await context.digest.enqueue("u-1", NotificationType.DONATION_RECEIVED, DigestItem(title="Donation"))
        drained = await context.digest.drain_all("u-1")

        email = build_digest_email(DigestFrequency.DAILY, drained)

        assert email.subject == "Your daily digest: 3 new notifications"
        assert email.template_name == "daily-digest"
        assert email.categories == ["digest", "daily"]
        assert email.template_data["count"] == 3
        assert email.template_data["sections"] == {"campaign-update": 2, "donation-received": 1}
        assert [n["title"] for n in email.template_data["notifications"]] == ["Update 0", "Update 1", "Donation"]

    async def test_singular_subject(self, context) -> None:
        await _queue(context, "u-1", "weekly", count=1)

        email = build_digest_email(DigestFrequency.WEEKLY, await context.digest.drain_all("u-1"))

        assert email.subject == "Your weekly digest: 1 new notification"


class TestFlush:
    async def test_daily_flush_sends_one_email_per_user(self, context, scheduler, email_transport) -> None:
        await _queue(context, "daily-1", "daily")
        await _queue(context, "daily-2", "daily")
        await _queue(context, "weekly-1", "weekly")

        report = await scheduler.flush(DigestFrequency.DAILY)

        assert report.users == 2
        assert report.sent == 2
        assert email_transport.send.await_count == 2
        assert {call.args[0] for call in email_transport.send.call_args_list} == {"daily-1", "daily-2"}
        assert await context.digest.count("daily-1") == 0
        assert await context.digest.count("weekly-1") == 2

    async def test_never_discards(self, context, scheduler, email_transport) -> None:
        await _queue(context, "muted", "never", count=3)

        report = await scheduler.flush(DigestFrequency.NEVER)

        assert report.discarded_entries == 3
        email_transport.send.assert_not_awaited()
        assert await context.digest.count("muted") == 0

    async def test_failed_email_is_counted(self, context, scheduler, email_transport) -> None:
        await _queue(context, "daily-1", "daily")
        email_transport.send.side_effect = TransportError("composer down", channel="email")

        report = await scheduler.flush(DigestFrequency.DAILY)

        assert report.failed == 1
        assert report.sent == 0
        assert await context.digest.count("daily-1") == 0


    async def test_unexpected_error_does_not_stop_other_users(self, context, scheduler, email_transport) -> None:
        await _queue(context, "daily-1", "daily")
        await _queue(context, "daily-2", "daily")
        email_transport.send.side_effect = [
            RuntimeError("encoder blew up"),
            DeliveryResult(outcome=PushOutcome.OK, status_code=202),
        ]

        report = await scheduler.flush(DigestFrequency.DAILY)

        assert report.users == 2
        assert report.failed == 1
        assert report.sent == 1
        assert email_transport.send.await_count == 2
        assert await context.digest.count("daily-1") == 0
        assert await context.digest.count("daily-2") == 0


# ============================================================================
# Scheduled jobs
# ============================================================================


class TestScheduledJobs:
    """Cron jobs registered with APScheduler and the work each one does."""

    async def test_registers_daily_and_weekly_jobs(self, scheduler) -> None:
        jobs = {job["id"]: job for job in scheduler.get_job_status()}

        assert set(jobs) == {DAILY_JOB_ID, WEEKLY_JOB_ID}
        assert "hour='9'" in jobs[DAILY_JOB_ID]["trigger"]
        assert "day_of_week" not in jobs[DAILY_JOB_ID]["trigger"]
        assert "day_of_week='0'" in jobs[WEEKLY_JOB_ID]["trigger"]
        assert "hour='9'" in jobs[WEEKLY_JOB_ID]["trigger"]

    async def test_daily_run_flushes_daily_and_discards_never(self, context, scheduler, email_transport) -> None:
        await _queue(context, "daily-1", "daily")
        await _queue(context, "muted", "never")
        await _queue(context, "weekly-1", "weekly")

        reports = await scheduler.run_daily()

        assert [r.frequency for r in reports] == [
            DigestFrequency.DAILY,
            DigestFrequency.INSTANT,
            DigestFrequency.NEVER,
        ]
        email_transport.send.assert_awaited_once()
        assert email_transport.send.call_args.args[0] == "daily-1"
        assert await context.digest.count("muted") == 0
        assert await context.digest.count("weekly-1") == 2

    async def test_daily_run_flushes_instant_leftovers(self, context, scheduler, email_transport) -> None:
        await _queue(context, "switched", "daily")
        await context.preferences.update("switched", {"digest_frequency": "instant"})

        await scheduler.run_daily()

        email_transport.send.assert_awaited_once()
        assert await context.digest.count("switched") == 0

    async def test_weekly_run(self, context, scheduler, email_transport) -> None:
        await _queue(context, "weekly-1", "weekly")
        await _queue(context, "daily-1", "daily")

        report = await scheduler.run_weekly()

        assert report.frequency is DigestFrequency.WEEKLY
        assert report.sent == 1
        assert email_transport.send.call_args.args[0] == "weekly-1"
        assert await context.digest.count("daily-1") == 2


class TestLifecycle:
    async def test_start_and_stop(self, scheduler) -> None:
        scheduler.start()
        scheduler.start()
        assert scheduler.running is True
        assert all(job["next_run_time"] is not None for job in scheduler.get_job_status())

        await scheduler.stop()

        assert scheduler.running is False

    async def test_stop_without_start(self, scheduler) -> None:
        await scheduler.stop()
        assert scheduler.running is False
