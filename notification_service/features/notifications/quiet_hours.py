"""Quiet hours predicate."""

from __future__ import annotations

from typing import TYPE_CHECKING

from notification_service.features.notifications.schemas import minute_of_day

if TYPE_CHECKING:
    from datetime import datetime

    from notification_service.features.notifications.schemas import NotificationPreferences


def is_quiet(preferences: NotificationPreferences, now: datetime) -> bool:
    """Whether ``now`` falls inside the user's quiet-hours window.

    The window is half-open, ``[start, end)``, at minute precision. A start
    later than the end spans midnight (22:00-08:00 is quiet at 23:30 and at
    03:00). Equal start and end is an empty window.

    ``now`` is compared as given; callers pass the engine clock's UTC time.
    """
    if not preferences.quiet_hours_enabled:
        return False

    start = minute_of_day(preferences.quiet_hours_start)
    end = minute_of_day(preferences.quiet_hours_end)
    current = now.hour * 60 + now.minute

    if start <= end:
        return start <= current < end
    return current >= start or current < end


__all__ = ["is_quiet"]
