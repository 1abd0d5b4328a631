"""Tests for the quiet hours predicate."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from notification_service.features.notifications.quiet_hours import is_quiet
from notification_service.features.notifications.schemas import NotificationPreferences


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 6, 2, hour, minute, tzinfo=UTC)


def _prefs(start: str, end: str, *, enabled: bool = True) -> NotificationPreferences:
    return NotificationPreferences(
        quiet_hours_enabled=enabled,
        quiet_hours_start=start,
        quiet_hours_end=end,
    )


class TestWindowAcrossMidnight:
    """22:00-08:00 style windows."""

    @pytest.mark.parametrize(
        ("hour", "minute"),
        [(22, 0), (23, 30), (0, 0), (3, 0), (7, 59)],
    )
    def test_inside(self, hour: int, minute: int) -> None:
        assert is_quiet(_prefs("22:00", "08:00"), _at(hour, minute)) is True

    @pytest.mark.parametrize(
        ("hour", "minute"),
        [(8, 0), (12, 0), (21, 59)],
    )
    def test_outside(self, hour: int, minute: int) -> None:
        assert is_quiet(_prefs("22:00", "08:00"), _at(hour, minute)) is False


class TestSameDayWindow:
    """Windows that start and end on the same day."""

    def test_business_hours(self) -> None:
        prefs = _prefs("09:00", "17:00")

        assert is_quiet(prefs, _at(12)) is True
        assert is_quiet(prefs, _at(20)) is False

    def test_start_is_inclusive(self) -> None:
        assert is_quiet(_prefs("13:00", "14:30"), _at(13, 0)) is True

    def test_end_is_exclusive(self) -> None:
        assert is_quiet(_prefs("13:00", "14:30"), _at(14, 30)) is False

    def test_before_window(self) -> None:
        assert is_quiet(_prefs("13:00", "14:30"), _at(12, 59)) is False


class TestDegenerateWindows:
    def test_disabled_is_never_quiet(self) -> None:
        assert is_quiet(_prefs("00:00", "23:59", enabled=False), _at(12)) is False

    def test_equal_start_and_end_is_empty(self) -> None:
        prefs = _prefs("10:00", "10:00")
        assert not any(is_quiet(prefs, _at(hour)) for hour in range(24))

    def test_defaults_are_not_quiet(self) -> None:
        assert is_quiet(NotificationPreferences(), _at(23)) is False
