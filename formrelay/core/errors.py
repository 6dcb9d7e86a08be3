from __future__ import annotations


class FormRelayError(Exception):
    """Base error for formrelay."""


class ValidationError(FormRelayError):
    """A submission is missing a required field or carries an invalid value."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class NotFoundError(FormRelayError):
    """Unknown form or submission."""


class AuthError(FormRelayError):
    """Bad credentials, or a missing, malformed or expired session token."""

    def __init__(self, message: str, *, status_code: int = 401) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(FormRelayError):
    """Missing third-party credentials or an unsupported backend/provider type."""


class ActionError(FormRelayError):
    """A single post-submission action failed."""


class EmailDeliveryError(ActionError):
    """The email transport rejected or failed to send a message."""


class NotificationError(FormRelayError):
    """Push-notification publish failed."""


class PersistenceError(FormRelayError):
    """Database read/write failure."""

