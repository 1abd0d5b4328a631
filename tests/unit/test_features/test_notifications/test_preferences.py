"""Tests for the preference store."""

from __future__ import annotations

import pytest

from notification_service.features.notifications.exceptions import NotificationValidationError
from notification_service.features.notifications.preferences import DEFAULT_PREFERENCES, PreferenceStore
from notification_service.features.notifications.schemas import NotificationPreferences, PreferencesUpdate
from notification_service.features.notifications.types import Channel, DigestFrequency, NotificationType


@pytest.fixture
def store(session_factory) -> PreferenceStore:
    return PreferenceStore(session_factory)


# ============================================================================
# Defaults
# ============================================================================


class TestDefaults:
    """Users who never saved anything resolve to the canonical defaults."""

    async def test_unknown_user_gets_defaults(self, store: PreferenceStore) -> None:
        prefs = await store.get("never-saved")

        assert prefs == NotificationPreferences()
        assert prefs is DEFAULT_PREFERENCES

    def test_default_values(self) -> None:
        prefs = NotificationPreferences()

        assert prefs.digest_frequency is DigestFrequency.INSTANT
        assert prefs.quiet_hours_enabled is False
        assert prefs.quiet_hours_start == "22:00"
        assert prefs.quiet_hours_end == "08:00"
        for channel in Channel:
            assert prefs.is_enabled(channel, NotificationType.DONATION_RECEIVED)
            assert prefs.is_enabled(channel, NotificationType.GOAL_REACHED)
            assert not prefs.is_enabled(channel, NotificationType.TRUST_SCORE_CHANGED)

    def test_channels_document_uses_public_type_names(self) -> None:
        document = NotificationPreferences().channels_document()

        assert set(document) == {"push", "email"}
        assert set(document["push"]) == {t.value for t in NotificationType}


# ============================================================================
# Partial updates
# ============================================================================


class TestUpdate:
    async def test_nested_partial_update_keeps_other_fields(self, store: PreferenceStore) -> None:
        updated = await store.update("u-1", {"email": {"campaign-update": False}})

        assert updated.email.is_enabled(NotificationType.CAMPAIGN_UPDATE) is False
        assert updated.email.is_enabled(NotificationType.DONATION_RECEIVED) is True
        assert updated.push == DEFAULT_PREFERENCES.push
        assert updated.digest_frequency is DigestFrequency.INSTANT

    async def test_update_is_persisted(self, store: PreferenceStore) -> None:
        await store.update("u-1", {"digest_frequency": "weekly", "quiet_hours_enabled": True})

        prefs = await store.get("u-1")

        assert prefs.digest_frequency is DigestFrequency.WEEKLY
        assert prefs.quiet_hours_enabled is True
        assert prefs.quiet_hours_start == "22:00"

    async def test_successive_updates_merge(self, store: PreferenceStore) -> None:
        await store.update("u-1", {"push": {"goal-reached": False}})
        await store.update("u-1", {"push": {"trust-score-changed": True}})

        prefs = await store.get("u-1")

        assert prefs.push.is_enabled(NotificationType.GOAL_REACHED) is False
        assert prefs.push.is_enabled(NotificationType.TRUST_SCORE_CHANGED) is True

    async def test_accepts_update_model(self, store: PreferenceStore) -> None:
        update = PreferencesUpdate(quiet_hours_start="23:15", quiet_hours_end="06:45")

        prefs = await store.update("u-1", update)

        assert (prefs.quiet_hours_start, prefs.quiet_hours_end) == ("23:15", "06:45")

    async def test_users_are_isolated(self, store: PreferenceStore) -> None:
        await store.update("u-1", {"digest_frequency": "daily"})

        assert (await store.get("u-2")).digest_frequency is DigestFrequency.INSTANT

    async def test_get_many_mixes_saved_and_default(self, store: PreferenceStore) -> None:
        await store.update("u-1", {"digest_frequency": "never"})

        resolved = await store.get_many(["u-1", "u-2"])

        assert resolved["u-1"].digest_frequency is DigestFrequency.NEVER
        assert resolved["u-2"] is DEFAULT_PREFERENCES


class TestValidation:
    """Unknown keys and malformed values are rejected and nothing is saved."""

    @pytest.mark.parametrize(
        "partial",
        [
            {"sms": {"donation-received": True}},
            {"push": {"campaign-deleted": True}},
            {"digest_frequency": "hourly"},
            {"quiet_hours_start": "25:00"},
            {"quiet_hours_end": "8am"},
        ],
    )
    async def test_rejected(self, store: PreferenceStore, partial: dict) -> None:
        with pytest.raises(NotificationValidationError) as exc_info:
            await store.update("u-1", partial)

        assert exc_info.value.status_code == 422
        assert exc_info.value.errors
        assert await store.get("u-1") is DEFAULT_PREFERENCES

    async def test_unknown_key_is_reported(self, store: PreferenceStore) -> None:
        with pytest.raises(NotificationValidationError) as exc_info:
            await store.update("u-1", {"sms": {}})

        assert exc_info.value.field == "sms"
