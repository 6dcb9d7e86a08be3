from __future__ import annotations

from typing import Any

from formrelay.apps.api.response import ErrorEnvelope


def _error_response(status_code: int, description: str, message: str) -> dict[str, Any]:
    # Build a consistent error envelope example for OpenAPI docs.
    return {
        "model": ErrorEnvelope,
        "description": description,
        "content": {
            "application/json": {
                "example": {"success": False, "error": message, "code": status_code},
            }
        },
    }


DEFAULT_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: _error_response(400, "Bad request", "required field 'email' is missing"),
    404: _error_response(404, "Not found", "Submission not found"),
    429: _error_response(429, "Rate limited", "Rate limit exceeded"),
    500: _error_response(500, "Internal error", "Internal server error"),
}

ADMIN_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    **DEFAULT_ERROR_RESPONSES,
    401: _error_response(401, "Unauthorized", "Invalid or expired session"),
    503: _error_response(503, "Unavailable", "Admin credentials not configured"),
}
