from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import hmac
import logging
import secrets

from formrelay.core.config import Settings
from formrelay.core.errors import AuthError
from formrelay.services.ttl_store import TTLStore


logger = logging.getLogger(__name__)

_TOKEN_BYTES = 32


@dataclass(frozen=True)
class AdminSession:
    token: str
    expires_at: datetime


class AdminSessionManager:
    def __init__(self, settings: Settings, store: TTLStore[datetime]) -> None:
        self.username = settings.admin_username
        self.password = settings.admin_password
        self.ttl = timedelta(hours=settings.admin_session_ttl_hours)
        self.store = store

    @property
    def configured(self) -> bool:
        return bool(self.username and self.password)

    def login(self, username: str, password: str) -> AdminSession:
        if not self.configured:
            raise AuthError("Admin credentials not configured", status_code=503)
        # Compare both fields even when the first mismatches.
        user_ok = hmac.compare_digest(username.encode("utf-8"), self.username.encode("utf-8"))
        password_ok = hmac.compare_digest(password.encode("utf-8"), self.password.encode("utf-8"))
        if not (user_ok and password_ok):
            logger.warning("admin_login_failed username=%s", username)
            raise AuthError("Invalid credentials")
        token = secrets.token_hex(_TOKEN_BYTES)
        expires_at = datetime.now(timezone.utc) + self.ttl
        self.store.set(token, expires_at, self.ttl.total_seconds())
        return AdminSession(token=token, expires_at=expires_at)

    def authenticate(self, token: str) -> datetime:
        if not token:
            raise AuthError("Invalid or expired session")
        # The store evicts expired tokens on read.
        expires_at = self.store.get(token)
        if expires_at is None:
            raise AuthError("Invalid or expired session")
        return expires_at

    def logout(self, token: str) -> None:
        self.store.pop(token)
