from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict


class ErrorEnvelope(BaseModel):
    success: bool = False
    error: str
    code: int


class SubmissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    form_id: str
    data: dict[str, Any]
    ip_address: str | None = None
    user_agent: str | None = None
    submitted_at: datetime
    processed: bool
    processed_at: datetime | None = None
    error: str | None = None


class SubmissionListResponse(BaseModel):
    success: bool = True
    submissions: list[SubmissionOut]
    count: int
    form_id: str | None = None


def rfc3339(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def submission_list(submissions: list[Any], *, form_id: str | None = None) -> SubmissionListResponse:
    items = [SubmissionOut.model_validate(item) for item in submissions]
    return SubmissionListResponse(submissions=items, count=len(items), form_id=form_id)


def error_payload(status_code: int, message: str, **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"success": False, "error": message, "code": status_code}
    payload.update(extra)
    return payload


def error_response(
    status_code: int,
    message: str,
    *,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> JSONResponse:
    return JSONResponse(
        content=error_payload(status_code, message, **extra),
        status_code=status_code,
        headers=headers,
    )
