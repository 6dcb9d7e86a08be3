from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from formrelay.apps.api.container import Services
from formrelay.apps.api.deps import Page, get_page, get_services, require_admin, require_welcome_caller
from formrelay.apps.api.openapi import ADMIN_ERROR_RESPONSES
from formrelay.apps.api.response import SubmissionListResponse, SubmissionOut, rfc3339, submission_list
from formrelay.core.errors import NotFoundError


FEEDBACK_FORM_ID = "feedback-form"

router = APIRouter(prefix="/api/admin", tags=["admin"], responses=ADMIN_ERROR_RESPONSES)


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    message: str
    expires_at: str


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class SubmissionResponse(BaseModel):
    success: bool = True
    submission: SubmissionOut


class ReprocessResponse(BaseModel):
    success: bool = True
    message: str
    result: dict[str, Any]


class WelcomeEmailRequest(BaseModel):
    submission_id: str = Field(min_length=1)
    email: str = Field(min_length=1)


class CleanupResponse(BaseModel):
    success: bool = True
    message: str
    removed: int
    days: int


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, services: Services = Depends(get_services)) -> LoginResponse:
    session = services.sessions.login(payload.username, payload.password)
    return LoginResponse(token=session.token, message="Login successful", expires_at=rfc3339(session.expires_at))


@router.post("/logout", response_model=MessageResponse)
async def logout(
    token: str = Depends(require_admin),
    services: Services = Depends(get_services),
) -> MessageResponse:
    services.sessions.logout(token)
    return MessageResponse(message="Logged out")


@router.post("/send-welcome-email", response_model=MessageResponse, dependencies=[Depends(require_welcome_caller)])
async def send_welcome_email(
    payload: WelcomeEmailRequest,
    services: Services = Depends(get_services),
) -> MessageResponse:
    submission = await services.store.get(payload.submission_id)
    schema = services.registry.get(submission.form_id)
    if schema is None:
        raise NotFoundError("Form configuration not found")
    await services.email.send_welcome(submission, schema, payload.email)
    return MessageResponse(message=f"Welcome email sent to {payload.email.strip()}")


@router.get("/submissions", response_model=SubmissionListResponse, dependencies=[Depends(require_admin)])
async def list_submissions(
    page: Page = Depends(get_page),
    services: Services = Depends(get_services),
) -> SubmissionListResponse:
    submissions = await services.store.list(limit=page.limit, offset=page.offset)
    return submission_list(submissions)


@router.get("/submissions/{submission_id}", response_model=SubmissionResponse, dependencies=[Depends(require_admin)])
async def get_submission(submission_id: str, services: Services = Depends(get_services)) -> SubmissionResponse:
    submission = await services.store.get(submission_id)
    return SubmissionResponse(submission=SubmissionOut.model_validate(submission))


@router.delete("/submissions/{submission_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
async def delete_submission(submission_id: str, services: Services = Depends(get_services)) -> MessageResponse:
    await services.store.delete(submission_id)
    return MessageResponse(message="Submission deleted successfully")


@router.post(
    "/submissions/{submission_id}/reprocess",
    response_model=ReprocessResponse,
    dependencies=[Depends(require_admin)],
)
async def reprocess_submission(submission_id: str, services: Services = Depends(get_services)) -> ReprocessResponse:
    intake = await services.intake.reprocess(submission_id)
    return ReprocessResponse(message="Submission reprocessed successfully", result=intake.result.to_dict())


@router.get("/feedback", response_model=SubmissionListResponse, dependencies=[Depends(require_admin)])
async def list_feedback(
    page: Page = Depends(get_page),
    services: Services = Depends(get_services),
) -> SubmissionListResponse:
    submissions = await services.store.list(form_id=FEEDBACK_FORM_ID, limit=page.limit, offset=page.offset)
    return submission_list(submissions, form_id=FEEDBACK_FORM_ID)


@router.post("/analytics/cleanup", response_model=CleanupResponse, dependencies=[Depends(require_admin)])
async def cleanup_analytics(days: str | None = None, services: Services = Depends(get_services)) -> CleanupResponse:
    retention_days = services.settings.analytics_retention_days
    if days:
        try:
            parsed = int(days)
        except ValueError:
            parsed = 0
        # Non-positive or unparsable values keep the configured retention.
        if parsed > 0:
            retention_days = parsed
    removed = await services.analytics.sweep(retention_days)
    return CleanupResponse(
        message=f"Cleaned up {removed} inactive servers",
        removed=removed,
        days=retention_days,
    )
