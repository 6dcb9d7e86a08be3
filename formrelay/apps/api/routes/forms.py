from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from formrelay.apps.api.container import Services
from formrelay.apps.api.deps import Page, get_client_ip, get_page, get_services
from formrelay.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from formrelay.apps.api.response import SubmissionListResponse, rfc3339, submission_list


router = APIRouter(prefix="/api/forms", tags=["forms"], responses=DEFAULT_ERROR_RESPONSES)


class SubmissionRequest(BaseModel):
    form_id: str = Field(min_length=1)
    data: dict[str, Any]


class SubmissionResponse(BaseModel):
    success: bool = True
    message: str
    id: str
    timestamp: str


class FormInfo(BaseModel):
    id: str
    name: str
    description: str
    enabled: bool


class FormListResponse(BaseModel):
    success: bool = True
    forms: list[FormInfo]


class FormResponse(BaseModel):
    success: bool = True
    form: dict[str, Any]


@router.post("/submit", response_model=SubmissionResponse)
async def submit_form(
    payload: SubmissionRequest,
    request: Request,
    ip_address: str = Depends(get_client_ip),
    services: Services = Depends(get_services),
) -> SubmissionResponse:
    intake = await services.intake.submit(
        payload.form_id,
        payload.data,
        ip_address=ip_address,
        user_agent=request.headers.get("User-Agent"),
    )
    # Detached from the response; publish failures only reach the log.
    services.notifications.dispatch_submission(intake.submission, intake.result, intake.schema)
    return SubmissionResponse(
        message="Form submitted successfully",
        id=intake.submission.id,
        timestamp=rfc3339(intake.submission.submitted_at),
    )


@router.get("", response_model=FormListResponse)
@router.get("/", response_model=FormListResponse, include_in_schema=False)
async def list_forms(services: Services = Depends(get_services)) -> FormListResponse:
    return FormListResponse(forms=[FormInfo(**schema.summary()) for schema in services.registry.list_forms()])


@router.get("/{form_id}", response_model=FormResponse)
async def get_form(form_id: str, services: Services = Depends(get_services)) -> FormResponse:
    schema = services.registry.require(form_id)
    return FormResponse(form=schema.to_dict())


@router.get("/{form_id}/submissions", response_model=SubmissionListResponse)
async def list_form_submissions(
    form_id: str,
    page: Page = Depends(get_page),
    services: Services = Depends(get_services),
) -> SubmissionListResponse:
    submissions = await services.store.list(form_id=form_id, limit=page.limit, offset=page.offset)
    return submission_list(submissions, form_id=form_id)
