"""Maps (notification type, payload) to push and email content.

Copy strings are Jinja2 templates rendered in a sandbox with
``StrictUndefined``, so a payload missing a field the copy refers to fails
loudly instead of producing "None donated  to your campaign".
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from jinja2 import StrictUndefined, TemplateSyntaxError, UndefinedError
from jinja2.sandbox import SandboxedEnvironment
from pydantic import JsonValue, TypeAdapter, ValidationError

from notification_service.features.notifications.exceptions import NotificationValidationError
from notification_service.features.notifications.types import NotificationType


@dataclass(slots=True, frozen=True)
class PushContent:
    """Content of a web push notification."""

    title: str
    body: str
    icon: str
    data: dict[str, Any]
    actions: list[dict[str, str]] | None = None


@dataclass(slots=True, frozen=True)
class EmailContent:
    """Input for the external email composer."""

    subject: str
    template_name: str
    template_data: dict[str, Any]
    text: str
    categories: list[str] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class FormattedNotification:
    """Channel-specific content for one notification."""

    notification_type: NotificationType
    push: PushContent
    email: EmailContent
    urgent: bool

    @property
    def title(self) -> str:
        """Title recorded in history."""
        return self.push.title or self.email.subject

    @property
    def body(self) -> str:
        """Body recorded in history."""
        return self.push.body or self.email.text


@dataclass(slots=True, frozen=True)
class _TypeCopy:
    required: tuple[str, ...]
    push_title: str
    push_body: str
    icon: str
    subject: str
    text: str
    template_name: str
    categories: tuple[str, ...]
    path: str
    actions: tuple[dict[str, str], ...] = ()


_COPY: dict[NotificationType, _TypeCopy] = {
    NotificationType.DONATION_RECEIVED: _TypeCopy(
        required=("amount", "campaign_id", "campaign_title"),
        push_title="New Donation!",
        push_body="{{ donor_name }} donated {{ amount }} to your campaign",
        icon="/icons/donation.png",
        subject="New donation to {{ campaign_title }}",
        text=(
            '{{ donor_name }} has donated {{ amount }} to your campaign "{{ campaign_title }}". '
            "Thank you for your support!"
        ),
        template_name="donation",
        categories=("donation", "transactional"),
        path="/campaigns/{{ campaign_id }}",
    ),
    NotificationType.CAMPAIGN_UPDATE: _TypeCopy(
        required=("campaign_id", "campaign_title", "update_title"),
        push_title="Update from {{ campaign_title }}",
        push_body="{{ update_title }}",
        icon="/icons/update.png",
        subject="New update from {{ campaign_title }}",
        text="{{ campaign_title }} posted a new update: {{ update_title }}",
        template_name="update",
        categories=("update", "campaign"),
        path="/campaigns/{{ campaign_id }}{% if update_id is defined and update_id %}/updates/{{ update_id }}{% endif %}",
    ),
    NotificationType.GOAL_REACHED: _TypeCopy(
        required=("campaign_id", "campaign_title", "goal_amount"),
        push_title="Goal Reached! 🎉",
        push_body="{{ campaign_title }} has reached its funding goal!",
        icon="/icons/success.png",
        subject="🎉 {{ campaign_title }} reached its goal!",
        text="Congratulations! {{ campaign_title }} has reached its funding goal of {{ goal_amount }}!",
        template_name="goal-reached",
        categories=("milestone", "goal-reached"),
        path="/campaigns/{{ campaign_id }}",
    ),
    NotificationType.CAMPAIGN_ENDING: _TypeCopy(
        required=("campaign_id", "campaign_title", "time_left"),
        push_title="Campaign Ending Soon",
        push_body="{{ campaign_title }} ends in {{ time_left }}",
        icon="/icons/clock.png",
        subject="{{ campaign_title }} is ending soon!",
        text="{{ campaign_title }} will end in {{ time_left }}. Don't miss your chance to contribute!",
        template_name="campaign-ending",
        categories=("reminder", "campaign-ending"),
        path="/campaigns/{{ campaign_id }}",
        actions=({"action": "donate", "title": "Donate Now"},),
    ),
    NotificationType.TRUST_SCORE_CHANGED: _TypeCopy(
        required=("old_score", "new_score"),
        push_title="Trust Score Update",
        push_body="Your trust score {{ direction }} to {{ new_score }}",
        icon="/icons/trust.png",
        subject="Your Trust Score has changed",
        text="Your trust score has {{ direction }} from {{ old_score }} to {{ new_score }}.",
        template_name="trust-score-change",
        categories=("trust-score", "account"),
        path="/profile#trust-score",
    ),
}

# Payload keys copied into the push deep-link data when present
_DATA_KEYS: dict[NotificationType, tuple[str, ...]] = {
    NotificationType.DONATION_RECEIVED: ("campaign_id", "donation_id"),
    NotificationType.CAMPAIGN_UPDATE: ("campaign_id", "update_id"),
    NotificationType.GOAL_REACHED: ("campaign_id",),
    NotificationType.CAMPAIGN_ENDING: ("campaign_id",),
    NotificationType.TRUST_SCORE_CHANGED: ("old_score", "new_score"),
}

_PAYLOAD_ADAPTER: TypeAdapter[dict[str, JsonValue]] = TypeAdapter(dict[str, JsonValue])


def _number(payload: dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool):
        msg = f"Field '{key}' must be a number"
        raise NotificationValidationError(msg, field=key)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        msg = f"Field '{key}' must be a number"
        raise NotificationValidationError(msg, field=key) from exc


def _donation_data(payload: dict[str, Any]) -> dict[str, Any]:
    return {
        "donor_name": payload.get("donor_name") or "Anonymous",
        "amount": payload["amount"],
        "currency": payload.get("currency") or "USD",
        "campaign_title": payload["campaign_title"],
        "message": payload.get("message"),
    }


def _update_data(payload: dict[str, Any]) -> dict[str, Any]:
    return {
        "campaign_title": payload["campaign_title"],
        "update_title": payload["update_title"],
        "update_content": payload.get("update_content"),
    }


def _goal_data(payload: dict[str, Any]) -> dict[str, Any]:
    data = {
        "campaign_title": payload["campaign_title"],
        "goal_amount": payload["goal_amount"],
        "current_amount": payload.get("current_amount"),
        "backer_count": payload.get("backer_count"),
        "currency": payload.get("currency") or "USD",
    }
    if data["current_amount"] is not None:
        goal = _number(payload, "goal_amount")
        if goal > 0:
            data["progress_percentage"] = round(_number(payload, "current_amount") / goal * 100)
    return data


def _ending_data(payload: dict[str, Any]) -> dict[str, Any]:
    data = {
        "campaign_title": payload["campaign_title"],
        "time_left": payload["time_left"],
        "current_amount": payload.get("current_amount"),
        "goal_amount": payload.get("goal_amount"),
        "currency": payload.get("currency") or "USD",
    }
    if data["current_amount"] is not None and data["goal_amount"] is not None:
        goal = _number(payload, "goal_amount")
        if goal > 0:
            data["progress_percentage"] = round(_number(payload, "current_amount") / goal * 100)
    return data


def _trust_data(payload: dict[str, Any]) -> dict[str, Any]:
    old_score = _number(payload, "old_score")
    new_score = _number(payload, "new_score")
    return {
        "old_score": payload["old_score"],
        "new_score": payload["new_score"],
        "score_change": abs(new_score - old_score),
        "score_increased": new_score > old_score,
        "reason": payload.get("reason"),
    }


_TEMPLATE_DATA: dict[NotificationType, Callable[[dict[str, Any]], dict[str, Any]]] = {
    NotificationType.DONATION_RECEIVED: _donation_data,
    NotificationType.CAMPAIGN_UPDATE: _update_data,
    NotificationType.GOAL_REACHED: _goal_data,
    NotificationType.CAMPAIGN_ENDING: _ending_data,
    NotificationType.TRUST_SCORE_CHANGED: _trust_data,
}


def validate_payload(payload: Any) -> dict[str, Any]:
    """Check that ``payload`` is a JSON object, so it can be stored and sent as is.

    Raises:
        NotificationValidationError: Not a mapping, or a value JSON cannot represent
    """
    try:
        return _PAYLOAD_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        errors = [
            {
                "loc": ".".join(str(part) for part in error["loc"]) or "payload",
                "msg": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        msg = "Payload must be a JSON object"
        raise NotificationValidationError(msg, field=errors[0]["loc"].split(".")[0], errors=errors) from exc


def parse_notification_type(value: NotificationType | str) -> NotificationType:
    """Coerce ``value`` to a ``NotificationType``.

    Raises:
        NotificationValidationError: Unknown type
    """
    if isinstance(value, NotificationType):
        return value
    try:
        return NotificationType(value)
    except ValueError as exc:
        msg = f"Unknown notification type: {value!r}"
        raise NotificationValidationError(msg, field="type") from exc


class NotificationFormatter:
    """Builds push and email content for a notification.

    Pure: the same type and payload always give the same output.

    Example:
        formatter = NotificationFormatter(app_url="https://blessed-horizon.com")
        formatted = formatter.format("goal-reached", {"campaign_id": "c1", ...})
        formatted.push.title  # "Goal Reached! 🎉"
    """

    def __init__(self, app_url: str = "") -> None:
        self._app_url = app_url.rstrip("/")
        self._env = SandboxedEnvironment(autoescape=False, undefined=StrictUndefined)

    def format(self, notification_type: NotificationType | str, payload: Any) -> FormattedNotification:
        """Format ``payload`` for every channel.

        Raises:
            NotificationValidationError: Unknown type or malformed payload
        """
        notification_type = parse_notification_type(notification_type)
        payload = validate_payload(payload)
        copy = _COPY[notification_type]

        missing = [key for key in copy.required if payload.get(key) in (None, "")]
        if missing:
            msg = f"Payload for {notification_type.value} is missing: {', '.join(missing)}"
            raise NotificationValidationError(
                msg,
                field=missing[0],
                errors=[{"loc": key, "msg": "field required", "type": "missing"} for key in missing],
            )

        template_data = _TEMPLATE_DATA[notification_type](payload)
        context = {**payload, **template_data}
        if notification_type is NotificationType.TRUST_SCORE_CHANGED:
            context["direction"] = "increased" if template_data["score_increased"] else "decreased"

        path = self._render(copy.path, context, notification_type)
        data: dict[str, Any] = {"type": notification_type.value, "url": path}
        for key in _DATA_KEYS[notification_type]:
            if payload.get(key) is not None:
                data[key] = payload[key]

        push = PushContent(
            title=self._render(copy.push_title, context, notification_type),
            body=self._render(copy.push_body, context, notification_type),
            icon=copy.icon,
            data=data,
            actions=[dict(action) for action in copy.actions] or None,
        )
        email = EmailContent(
            subject=self._render(copy.subject, context, notification_type),
            template_name=copy.template_name,
            template_data={**template_data, "action_url": f"{self._app_url}{path}"},
            text=self._render(copy.text, context, notification_type),
            categories=list(copy.categories),
        )
        return FormattedNotification(
            notification_type=notification_type,
            push=push,
            email=email,
            urgent=notification_type.is_urgent,
        )

    def _render(self, source: str, context: dict[str, Any], notification_type: NotificationType) -> str:
        try:
            return self._env.from_string(source).render(context)
        except UndefinedError as exc:
            msg = f"Malformed payload for {notification_type.value}: {exc.message}"
            raise NotificationValidationError(msg) from exc
        except TemplateSyntaxError as exc:
            msg = f"Invalid copy template for {notification_type.value}: {exc}"
            raise NotificationValidationError(msg) from exc


__all__ = [
    "EmailContent",
    "FormattedNotification",
    "NotificationFormatter",
    "PushContent",
    "parse_notification_type",
    "validate_payload",
]
