from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Union
import re

from formrelay.core.errors import ConfigurationError


FIELD_TYPES = frozenset({"text", "email", "textarea", "number", "tel", "url"})

ACTION_SEND_EMAIL = "send_email"
ACTION_ADD_TESTER = "google_play_add_tester"
ACTION_LOG = "log"
ACTION_WEBHOOK = "webhook"

DEFAULT_TESTER_TRACK = "internal"
DEFAULT_LOG_MESSAGE = "Form submission processed"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: str = "text"
    required: bool = False
    label: str | None = None
    validation_pattern: str | None = None
    placeholder: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "required": self.required,
            "label": self.label,
            "validation": self.validation_pattern,
            "placeholder": self.placeholder,
        }


@dataclass(frozen=True)
class EmailPolicy:
    enabled: bool = False
    template: str = ""
    subject: str = ""
    send_confirmation: bool = False

    @property
    def confirmation_enabled(self) -> bool:
        return self.enabled and self.send_confirmation

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "template": self.template,
            "subject": self.subject,
            "send_confirmation": self.send_confirmation,
        }


@dataclass(frozen=True)
class SendEmailAction:
    """Confirmation email, or the welcome email when the submission matches ``welcome_platform``."""

    template: str | None = None
    subject: str | None = None
    welcome_platform: str | None = None
    platform_field: str = "platform"
    config: Mapping[str, Any] = field(default_factory=dict)
    action_type: str = field(default=ACTION_SEND_EMAIL, init=False)


@dataclass(frozen=True)
class AddTesterAction:
    track: str = DEFAULT_TESTER_TRACK
    # Off when an earlier send_email action already confirms the submission.
    send_confirmation: bool = True
    config: Mapping[str, Any] = field(default_factory=dict)
    action_type: str = field(default=ACTION_ADD_TESTER, init=False)


@dataclass(frozen=True)
class LogAction:
    message: str = DEFAULT_LOG_MESSAGE
    config: Mapping[str, Any] = field(default_factory=dict)
    action_type: str = field(default=ACTION_LOG, init=False)


@dataclass(frozen=True)
class WebhookAction:
    url: str | None = None
    method: str = "POST"
    config: Mapping[str, Any] = field(default_factory=dict)
    action_type: str = field(default=ACTION_WEBHOOK, init=False)


@dataclass(frozen=True)
class UnknownAction:
    action_type: str
    config: Mapping[str, Any] = field(default_factory=dict)


Action = Union[SendEmailAction, AddTesterAction, LogAction, WebhookAction, UnknownAction]


@dataclass(frozen=True)
class FormSchema:
    id: str
    name: str
    description: str = ""
    fields: tuple[FieldSpec, ...] = ()
    actions: tuple[Action, ...] = ()
    email: EmailPolicy = field(default_factory=EmailPolicy)
    enabled: bool = True

    def required_fields(self) -> tuple[FieldSpec, ...]:
        return tuple(item for item in self.fields if item.required)

    def welcome_action(self) -> SendEmailAction | None:
        # The first send_email action with a platform switch drives welcome handling.
        for action in self.actions:
            if isinstance(action, SendEmailAction) and action.welcome_platform:
                return action
        return None

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "enabled": self.enabled,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.summary(),
            "fields": [item.to_dict() for item in self.fields],
            "actions": [{"type": action.action_type, "config": dict(action.config)} for action in self.actions],
            "email": self.email.to_dict(),
        }


def _optional_str(config: Mapping[str, Any], key: str) -> str | None:
    value = config.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_bool(value: Any, *, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def parse_action(raw: Any, *, form_id: str) -> Action:
    # Resolve the action variant once at load; unknown types fail when executed, not here.
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"form '{form_id}': each action must be a mapping")
    action_type = str(raw.get("type") or "").strip()
    if not action_type:
        raise ConfigurationError(f"form '{form_id}': action is missing 'type'")
    config = raw.get("config") or {}
    if not isinstance(config, Mapping):
        raise ConfigurationError(f"form '{form_id}': config for action '{action_type}' must be a mapping")
    frozen = MappingProxyType(dict(config))

    if action_type == ACTION_SEND_EMAIL:
        return SendEmailAction(
            template=_optional_str(config, "template"),
            subject=_optional_str(config, "subject"),
            welcome_platform=_optional_str(config, "welcome_platform"),
            platform_field=_optional_str(config, "platform_field") or "platform",
            config=frozen,
        )
    if action_type == ACTION_ADD_TESTER:
        return AddTesterAction(
            track=_optional_str(config, "track") or DEFAULT_TESTER_TRACK,
            send_confirmation=_as_bool(config.get("send_confirmation"), default=True),
            config=frozen,
        )
    if action_type == ACTION_LOG:
        return LogAction(message=_optional_str(config, "message") or DEFAULT_LOG_MESSAGE, config=frozen)
    if action_type == ACTION_WEBHOOK:
        return WebhookAction(
            url=_optional_str(config, "url"),
            method=(_optional_str(config, "method") or "POST").upper(),
            config=frozen,
        )
    return UnknownAction(action_type=action_type, config=frozen)


def parse_field(raw: Any, *, form_id: str) -> FieldSpec:
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"form '{form_id}': each field must be a mapping")
    name = str(raw.get("name") or "").strip()
    if not name:
        raise ConfigurationError(f"form '{form_id}': field is missing 'name'")
    field_type = str(raw.get("type") or "text").strip().lower()
    if field_type not in FIELD_TYPES:
        raise ConfigurationError(f"form '{form_id}': field '{name}' has unsupported type '{field_type}'")
    pattern = _optional_str(raw, "validation")
    if pattern is not None:
        try:
            re.compile(pattern)
        except re.error as exc:
            raise ConfigurationError(
                f"form '{form_id}': field '{name}' has an invalid validation pattern"
            ) from exc
    return FieldSpec(
        name=name,
        type=field_type,
        required=_as_bool(raw.get("required"), default=False),
        label=_optional_str(raw, "label"),
        validation_pattern=pattern,
        placeholder=_optional_str(raw, "placeholder"),
    )


def parse_email_policy(raw: Any, *, form_id: str) -> EmailPolicy:
    if raw is None:
        return EmailPolicy()
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"form '{form_id}': 'email' must be a mapping")
    return EmailPolicy(
        enabled=_as_bool(raw.get("enabled"), default=False),
        template=_optional_str(raw, "template") or "",
        subject=_optional_str(raw, "subject") or "",
        send_confirmation=_as_bool(raw.get("send_confirmation"), default=False),
    )


def parse_form_schema(form_id: str, raw: Any) -> FormSchema:
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"form '{form_id}' must be a mapping")
    raw_fields = raw.get("fields") or []
    raw_actions = raw.get("actions") or []
    if not isinstance(raw_fields, list) or not isinstance(raw_actions, list):
        raise ConfigurationError(f"form '{form_id}': 'fields' and 'actions' must be lists")
    fields = tuple(parse_field(item, form_id=form_id) for item in raw_fields)
    seen: set[str] = set()
    for item in fields:
        if item.name in seen:
            raise ConfigurationError(f"form '{form_id}': duplicate field '{item.name}'")
        seen.add(item.name)
    return FormSchema(
        id=form_id,
        name=_optional_str(raw, "name") or form_id,
        description=_optional_str(raw, "description") or "",
        fields=fields,
        actions=tuple(parse_action(item, form_id=form_id) for item in raw_actions),
        email=parse_email_policy(raw.get("email"), form_id=form_id),
        enabled=_as_bool(raw.get("enabled"), default=True),
    )
