from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError

from formrelay.core.errors import NotFoundError, PersistenceError
from formrelay.domain.models import FormSubmission
from formrelay.persistence.db import Database
from formrelay.persistence.repos import submissions as submissions_repo
from formrelay.services.backup import SubmissionBackupWriter


logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50


def new_submission(
    *,
    form_id: str,
    data: dict[str, Any],
    ip_address: str | None = None,
    user_agent: str | None = None,
    submitted_at: datetime | None = None,
    submission_id: str | None = None,
) -> FormSubmission:
    return FormSubmission(
        id=submission_id or "",
        form_id=form_id,
        data=dict(data),
        ip_address=ip_address,
        user_agent=user_agent,
        submitted_at=submitted_at or datetime.now(timezone.utc),
        processed=False,
        processed_at=None,
        error="",
    )


class SubmissionStore:
    def __init__(self, database: Database, backups: SubmissionBackupWriter | None = None) -> None:
        self.database = database
        self.backups = backups

    async def create(self, submission: FormSubmission) -> str:
        # Identity is assigned here when the caller did not supply one.
        if not submission.id:
            submission.id = str(uuid4())
        try:
            async with self.database.session() as session:
                await submissions_repo.insert_submission(session, submission)
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to store submission") from exc
        logger.info("submission_stored submission_id=%s form_id=%s", submission.id, submission.form_id)
        if self.backups is not None:
            await self.backups.write(submission)
        return submission.id

    async def update(self, submission: FormSubmission) -> None:
        try:
            async with self.database.session() as session:
                updated = await submissions_repo.update_processing_state(
                    session,
                    submission.id,
                    processed=submission.processed,
                    processed_at=submission.processed_at,
                    error=submission.error,
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to update submission") from exc
        if not updated:
            raise NotFoundError(f"Submission '{submission.id}' not found")

    async def get(self, submission_id: str) -> FormSubmission:
        try:
            async with self.database.session() as session:
                submission = await submissions_repo.get_submission(session, submission_id)
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to load submission") from exc
        if submission is None:
            raise NotFoundError("Submission not found")
        return submission

    async def list(
        self,
        *,
        form_id: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> list[FormSubmission]:
        try:
            async with self.database.session() as session:
                return await submissions_repo.list_submissions(
                    session,
                    form_id=form_id,
                    limit=max(0, limit),
                    offset=max(0, offset),
                )
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to retrieve submissions") from exc

    async def delete(self, submission_id: str) -> None:
        try:
            async with self.database.session() as session:
                deleted = await submissions_repo.delete_submission(session, submission_id)
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to delete submission") from exc
        if not deleted:
            raise NotFoundError("Submission not found")
