from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from formrelay.apps.api.response import error_response
from formrelay.core.errors import (
    AuthError,
    FormRelayError,
    NotFoundError,
    ValidationError,
)


logger = logging.getLogger(__name__)


def status_for_error(exc: FormRelayError) -> int:
    # Map the domain taxonomy onto HTTP status codes.
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, AuthError):
        return exc.status_code
    # PersistenceError, ConfigurationError and anything unclassified.
    return 500


def _detail_message(detail: Any) -> str:
    if isinstance(detail, dict):
        return str(detail.get("message") or detail.get("error") or "Request failed")
    if isinstance(detail, str) and detail:
        return detail
    return "Request failed"


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for item in exc.errors():
        location = ".".join(str(part) for part in item.get("loc", ()) if part != "body")
        message = item.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else str(message))
    return "; ".join(parts) or "malformed body"


async def formrelay_exception_handler(request: Request, exc: FormRelayError) -> JSONResponse:
    status_code = status_for_error(exc)
    if status_code >= 500:
        logger.error("request_failed path=%s error=%s", request.url.path, type(exc).__name__, exc_info=exc)
    headers: dict[str, str] | None = None
    if isinstance(exc, AuthError) and status_code == 401:
        headers = {"WWW-Authenticate": "Bearer"}
    return error_response(status_code, str(exc), headers=headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Normalize HTTPExceptions (including router 404/405) into the shared envelope.
    return error_response(exc.status_code, _detail_message(exc.detail), headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(400, f"Invalid request format: {_format_validation_errors(exc)}")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Avoid leaking stack traces; return a stable internal error envelope.
    logger.exception("unhandled_exception path=%s", request.url.path)
    return error_response(500, "Internal server error")
