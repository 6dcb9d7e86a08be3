from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from formrelay.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from formrelay.apps.api.response import rfc3339
from formrelay.core.config import APP_VERSION


router = APIRouter(tags=["health"], responses=DEFAULT_ERROR_RESPONSES)


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        timestamp=rfc3339(datetime.now(timezone.utc)),
        version=APP_VERSION,
    )
