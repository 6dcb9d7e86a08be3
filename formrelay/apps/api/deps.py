from __future__ import annotations

from dataclasses import dataclass
import hmac

from fastapi import Depends, Request

from formrelay.apps.api.container import Services
from formrelay.core.errors import AuthError


DEFAULT_LIMIT = 50
DEFAULT_OFFSET = 0


def get_services(request: Request) -> Services:
    return request.app.state.services


def client_ip(request: Request, trust_forwarded_for: bool = False) -> str:
    # Only trust X-Forwarded-For behind a known proxy; otherwise use the socket peer.
    if trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


def get_client_ip(request: Request, services: Services = Depends(get_services)) -> str:
    return client_ip(request, services.settings.trust_forwarded_for)


def _parse_int(raw: str | None, default: int) -> int:
    # Unparsable or negative values fall back to the default instead of failing the request.
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


@dataclass(frozen=True)
class Page:
    limit: int
    offset: int


def get_page(limit: str | None = None, offset: str | None = None) -> Page:
    return Page(limit=_parse_int(limit, DEFAULT_LIMIT), offset=_parse_int(offset, DEFAULT_OFFSET))


def _parse_bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise AuthError("Authorization header required")
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1].strip():
        raise AuthError("Invalid authorization format")
    return parts[1].strip()


def require_admin(request: Request, services: Services = Depends(get_services)) -> str:
    token = _parse_bearer_token(request.headers.get("Authorization"))
    services.sessions.authenticate(token)
    return token


def require_welcome_caller(request: Request, services: Services = Depends(get_services)) -> None:
    # Accepts the notification button's webhook token or a regular admin session.
    expected = services.settings.welcome_webhook_token
    if not expected and not services.sessions.configured:
        raise AuthError("Welcome email webhook not configured", status_code=503)
    token = _parse_bearer_token(request.headers.get("Authorization"))
    if expected and hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        return
    services.sessions.authenticate(token)
