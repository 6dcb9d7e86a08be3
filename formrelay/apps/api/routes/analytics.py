from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from formrelay.apps.api.container import Services
from formrelay.apps.api.deps import get_client_ip, get_services
from formrelay.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from formrelay.apps.api.response import rfc3339
from formrelay.core.errors import AuthError
from formrelay.services.analytics import Heartbeat


router = APIRouter(prefix="/api/analytics", tags=["analytics"], responses=DEFAULT_ERROR_RESPONSES)


class HeartbeatRequest(BaseModel):
    server_hash: str = Field(min_length=1)
    version: str = Field(min_length=1)
    signature: str = Field(min_length=1)


class HeartbeatResponse(BaseModel):
    success: bool = True
    message: str
    timestamp: str


class SummaryData(BaseModel):
    total_count: int
    active_count: int
    version_breakdown: dict[str, int]
    as_of: str


class SummaryResponse(BaseModel):
    success: bool = True
    data: SummaryData


def require_analytics_enabled(services: Services = Depends(get_services)) -> None:
    if not services.settings.analytics_enabled:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Analytics collection is disabled")


@router.post("/submit", response_model=HeartbeatResponse, dependencies=[Depends(require_analytics_enabled)])
async def submit_heartbeat(
    payload: HeartbeatRequest,
    ip_address: str = Depends(get_client_ip),
    services: Services = Depends(get_services),
) -> HeartbeatResponse:
    heartbeat = Heartbeat(server_hash=payload.server_hash, version=payload.version, signature=payload.signature)
    if not services.analytics.verify_signature(heartbeat, ip_address):
        # Same answer for every mismatch; no hint about which part was wrong.
        raise AuthError("Invalid signature")
    await services.analytics.ingest(heartbeat, ip_address)
    return HeartbeatResponse(
        message="Analytics processed successfully",
        timestamp=rfc3339(datetime.now(timezone.utc)),
    )


@router.get("/summary", response_model=SummaryResponse, dependencies=[Depends(require_analytics_enabled)])
async def summary(services: Services = Depends(get_services)) -> SummaryResponse:
    result = await services.analytics.summarize()
    return SummaryResponse(
        data=SummaryData(
            total_count=result.total_count,
            active_count=result.active_count,
            version_breakdown=result.version_breakdown,
            as_of=rfc3339(result.as_of),
        )
    )
