"""Preference store: per-user channel switches, digest frequency, quiet hours."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from notification_service.core.services.base import BaseService
from notification_service.features.notifications.exceptions import NotificationValidationError
from notification_service.features.notifications.repository import (
    NotificationPreferenceRepository,
    get_notification_preference_repository,
)
from notification_service.features.notifications.schemas import (
    NotificationPreferences,
    PreferencesUpdate,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from notification_service.features.notifications.models import NotificationPreference

DEFAULT_PREFERENCES = NotificationPreferences()


def _validation_error(exc: ValidationError, message: str) -> NotificationValidationError:
    errors = [
        {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"], "type": err["type"]}
        for err in exc.errors()
    ]
    field = errors[0]["loc"] if errors else None
    return NotificationValidationError(message, field=field, errors=errors)


def preferences_from_row(row: NotificationPreference) -> NotificationPreferences:
    """Build the domain model from a stored row."""
    channels = row.channels or {}
    return NotificationPreferences.model_validate(
        {
            "push": channels.get("push", {}),
            "email": channels.get("email", {}),
            "digest_frequency": row.digest_frequency,
            "quiet_hours_enabled": row.quiet_hours_enabled,
            "quiet_hours_start": row.quiet_hours_start,
            "quiet_hours_end": row.quiet_hours_end,
        },
    )


def preferences_to_row_values(preferences: NotificationPreferences) -> dict[str, Any]:
    """Column values for persisting ``preferences``."""
    return {
        "channels": preferences.channels_document(),
        "digest_frequency": preferences.digest_frequency.value,
        "quiet_hours_enabled": preferences.quiet_hours_enabled,
        "quiet_hours_start": preferences.quiet_hours_start,
        "quiet_hours_end": preferences.quiet_hours_end,
    }


class PreferenceStore(BaseService):
    """Resolves and persists notification preferences.

    A user without a stored row gets ``DEFAULT_PREFERENCES``; nothing is
    written until the user saves a change.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        repository: NotificationPreferenceRepository | None = None,
    ) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._repository = repository or get_notification_preference_repository()

    async def get(self, user_id: str) -> NotificationPreferences:
        """Return the stored preferences for ``user_id`` or the defaults."""
        async with self._session_factory() as session:
            row = await self._repository.get_for_user(session, user_id)

        if row is None:
            self._lazy.debug(lambda: f"preferences({user_id=}) -> defaults")
            return DEFAULT_PREFERENCES
        return preferences_from_row(row)

    async def get_many(self, user_ids: list[str]) -> dict[str, NotificationPreferences]:
        """Resolve preferences for several users in one session."""
        resolved: dict[str, NotificationPreferences] = {}
        async with self._session_factory() as session:
            for user_id in user_ids:
                row = await self._repository.get_for_user(session, user_id)
                resolved[user_id] = DEFAULT_PREFERENCES if row is None else preferences_from_row(row)
        return resolved

    async def update(self, user_id: str, partial: dict[str, Any] | PreferencesUpdate) -> NotificationPreferences:
        """Merge ``partial`` into the current preferences and persist the result.

        Args:
            user_id: Owner of the preferences
            partial: Fields to change. Nested ``push``/``email`` maps may be partial.

        Returns:
            The full, persisted preferences

        Raises:
            NotificationValidationError: Unknown key or malformed value
        """
        try:
            update = partial if isinstance(partial, PreferencesUpdate) else PreferencesUpdate.model_validate(partial)
        except ValidationError as exc:
            raise _validation_error(exc, "Invalid preference update") from exc

        async with self._session_factory.begin() as session:
            row = await self._repository.get_for_user(session, user_id)
            current = DEFAULT_PREFERENCES if row is None else preferences_from_row(row)
            try:
                merged = NotificationPreferences.model_validate(update.merged_into(current))
            except ValidationError as exc:
                raise _validation_error(exc, "Invalid preference values") from exc
            await self._repository.save(session, user_id, preferences_to_row_values(merged))

        self.logger.info(
            "Notification preferences updated",
            extra={"user_id": user_id, "fields": sorted(update.model_fields_set)},
        )
        return merged


__all__ = [
    "DEFAULT_PREFERENCES",
    "PreferenceStore",
    "preferences_from_row",
    "preferences_to_row_values",
]
