"""In-process digest scheduler.

Drains the digest queue on a cron schedule and sends one summary email per
user. Delivery is at-most-once: entries are removed before the email is sent
and are not restored when the composer fails.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]
from apscheduler.triggers.cron import CronTrigger  # type: ignore[import-untyped]

from notification_service.core.services.base import BaseService
from notification_service.features.notifications.exceptions import TransportError
from notification_service.features.notifications.formatter import EmailContent
from notification_service.features.notifications.metrics import digest_flushed_total
from notification_service.features.notifications.types import DigestFrequency

if TYPE_CHECKING:
    from collections.abc import Sequence

    from notification_service.features.notifications.channels.base import EmailTransport
    from notification_service.features.notifications.digest import DigestQueue
    from notification_service.features.notifications.models import DigestQueueEntry
    from notification_service.features.notifications.types import NotificationType

DAILY_JOB_ID = "digest_daily"
WEEKLY_JOB_ID = "digest_weekly"


@dataclass
class DigestFlushReport:
    """Counters for one flush run."""

    frequency: DigestFrequency
    users: int = 0
    sent: int = 0
    failed: int = 0
    discarded_entries: int = 0


def build_digest_email(
    frequency: DigestFrequency,
    drained: dict[NotificationType, Sequence[DigestQueueEntry]],
) -> EmailContent:
    """Summary email for everything drained for one user."""
    label = "weekly" if frequency is DigestFrequency.WEEKLY else "daily"
    items: list[dict[str, Any]] = []
    sections: dict[str, int] = {}
    for notification_type, entries in drained.items():
        sections[notification_type.value] = len(entries)
        items.extend(
            {
                "type": notification_type.value,
                "title": entry.title,
                "body": entry.body,
                "data": entry.payload or {},
            }
            for entry in entries
        )

    count = len(items)
    noun = "notification" if count == 1 else "notifications"
    return EmailContent(
        subject=f"Your {label} digest: {count} new {noun}",
        template_name=f"{label}-digest",
        template_data={"notifications": items, "count": count, "sections": sections, "frequency": label},
        text="\n".join(f"- {item['title']}" for item in items),
        categories=["digest", label],
    )


class DigestScheduler(BaseService):
    """Flushes digest queues at a fixed UTC hour with APScheduler cron jobs.

    Every day at ``daily_hour`` users on ``daily`` are flushed (plus entries
    left behind by users who switched back to ``instant``) and entries of
    users on ``never`` are discarded. On ``weekly_day`` at the same hour
    users on ``weekly`` are flushed too.
    """

    def __init__(
        self,
        digest: DigestQueue,
        email_transport: EmailTransport,
        *,
        daily_hour: int = 9,
        weekly_day: int = 0,
        misfire_grace_seconds: int = 60,
    ) -> None:
        super().__init__()
        self._digest = digest
        self._email = email_transport
        self._daily_hour = daily_hour
        self._weekly_day = weekly_day
        self._scheduler = AsyncIOScheduler(
            timezone="UTC",
            job_defaults={
                "coalesce": True,  # Collapse missed runs into one
                "max_instances": 1,
                "misfire_grace_time": misfire_grace_seconds,
            },
        )
        self._scheduler.add_job(
            func=self.run_daily,
            trigger=CronTrigger(hour=daily_hour, minute=0, timezone="UTC"),
            id=DAILY_JOB_ID,
            name="Flush daily digests",
            replace_existing=True,
        )
        self._scheduler.add_job(
            func=self.run_weekly,
            trigger=CronTrigger(day_of_week=weekly_day, hour=daily_hour, minute=0, timezone="UTC"),
            id=WEEKLY_JOB_ID,
            name="Flush weekly digests",
            replace_existing=True,
        )

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self) -> None:
        """Start the scheduler; must be called from a running event loop."""
        if self.running:
            self.logger.warning("Digest scheduler is already running")
            return
        self._scheduler.start()
        self.logger.info(
            "Digest scheduler started",
            extra={"daily_hour": self._daily_hour, "weekly_day": self._weekly_day},
        )

    async def stop(self) -> None:
        if not self.running:
            return
        self._scheduler.shutdown(wait=False)
        # Shutdown is applied on the event loop
        await asyncio.sleep(0)
        self.logger.info("Digest scheduler stopped")

    def get_job_status(self) -> list[dict[str, Any]]:
        """Registered jobs with their next run time (``None`` until started)."""
        return [
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": job.next_run_time.isoformat() if getattr(job, "next_run_time", None) else None,
                "trigger": str(job.trigger),
            }
            for job in self._scheduler.get_jobs()
        ]

    async def run_daily(self) -> list[DigestFlushReport]:
        """Daily job: flush ``daily`` and leftover ``instant`` entries, discard ``never``."""
        return [
            await self.flush(DigestFrequency.DAILY),
            await self.flush(DigestFrequency.INSTANT),
            await self.flush(DigestFrequency.NEVER),
        ]

    async def run_weekly(self) -> DigestFlushReport:
        return await self.flush(DigestFrequency.WEEKLY)

    async def flush(self, frequency: DigestFrequency) -> DigestFlushReport:
        """Drain and send (or discard, for ``never``) every pending user on ``frequency``.

        A failure for one user is counted and logged; the remaining users are
        still flushed.
        """
        report = DigestFlushReport(frequency=frequency)
        for user_id in await self._digest.pending_users(frequency):
            try:
                drained = await self._digest.drain_all(user_id)
            except Exception:
                report.failed += 1
                self.logger.exception("Could not drain digest queue", extra={"user_id": user_id})
                continue
            if not drained:
                continue
            report.users += 1

            if frequency is DigestFrequency.NEVER:
                report.discarded_entries += sum(len(entries) for entries in drained.values())
                digest_flushed_total.labels(frequency=frequency.value, status="discarded").inc()
                continue

            email = build_digest_email(frequency, drained)
            try:
                await self._email.send(user_id, email)
            except TransportError as exc:
                self._record_failure(report, frequency)
                self.logger.warning(
                    "Digest email failed",
                    extra={"user_id": user_id, "frequency": frequency.value, "error": exc.detail},
                )
                continue
            except Exception:
                self._record_failure(report, frequency)
                self.logger.exception(
                    "Email transport raised during digest",
                    extra={"user_id": user_id, "frequency": frequency.value},
                )
                continue
            report.sent += 1
            digest_flushed_total.labels(frequency=frequency.value, status="sent").inc()

        if report.users:
            self.logger.info(
                "Digest flush completed",
                extra={
                    "frequency": frequency.value,
                    "users": report.users,
                    "sent": report.sent,
                    "failed": report.failed,
                    "discarded_entries": report.discarded_entries,
                },
            )
        return report

    @staticmethod
    def _record_failure(report: DigestFlushReport, frequency: DigestFrequency) -> None:
        report.failed += 1
        digest_flushed_total.labels(frequency=frequency.value, status="failed").inc()


__all__ = ["DAILY_JOB_ID", "WEEKLY_JOB_ID", "DigestFlushReport", "DigestScheduler", "build_digest_email"]
