from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from formrelay.domain.models import FormSubmission


async def insert_submission(session: AsyncSession, submission: FormSubmission) -> None:
    session.add(submission)
    await session.flush()


async def update_processing_state(
    session: AsyncSession,
    submission_id: str,
    *,
    processed: bool,
    processed_at: datetime | None,
    error: str | None,
) -> bool:
    # Only the mutable processing columns are ever rewritten.
    result = await session.execute(
        update(FormSubmission)
        .where(FormSubmission.id == submission_id)
        .values(processed=processed, processed_at=processed_at, error=error)
    )
    return (result.rowcount or 0) > 0


async def get_submission(session: AsyncSession, submission_id: str) -> FormSubmission | None:
    result = await session.execute(select(FormSubmission).where(FormSubmission.id == submission_id))
    return result.scalar_one_or_none()


async def list_submissions(
    session: AsyncSession,
    *,
    form_id: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[FormSubmission]:
    stmt = select(FormSubmission)
    if form_id is not None:
        stmt = stmt.where(FormSubmission.form_id == form_id)
    # Newest first; id breaks ties so pages are stable.
    stmt = stmt.order_by(FormSubmission.submitted_at.desc(), FormSubmission.id).limit(limit).offset(offset)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def delete_submission(session: AsyncSession, submission_id: str) -> bool:
    result = await session.execute(delete(FormSubmission).where(FormSubmission.id == submission_id))
    return (result.rowcount or 0) > 0
