from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any

from formrelay.core.errors import FormRelayError, ValidationError
from formrelay.domain.models import FormSubmission
from formrelay.domain.results import ProcessingResult
from formrelay.domain.schema import FormSchema
from formrelay.services.actions import ActionPipeline
from formrelay.services.registry import SchemaRegistry
from formrelay.services.submission_store import SubmissionStore, new_submission
from formrelay.services.validation import validate_submission


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntakeResult:
    submission: FormSubmission
    schema: FormSchema
    result: ProcessingResult


def apply_result(submission: FormSubmission, result: ProcessingResult) -> None:
    # Fold the aggregate outcome back onto the row's mutable columns.
    submission.processed = result.success
    submission.processed_at = result.processed_at
    submission.error = "" if result.success else result.failure_summary()


class SubmissionIntake:
    """validate -> store -> run actions -> record outcome."""

    def __init__(
        self,
        registry: SchemaRegistry,
        store: SubmissionStore,
        pipeline: ActionPipeline,
        *,
        check_patterns: bool = False,
    ) -> None:
        self.registry = registry
        self.store = store
        self.pipeline = pipeline
        self.check_patterns = check_patterns

    async def submit(
        self,
        form_id: str,
        data: dict[str, Any],
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> IntakeResult:
        schema = self.registry.require(form_id)
        if not schema.enabled:
            raise ValidationError(f"form '{form_id}' is not accepting submissions")
        # Rejected submissions never reach the store or the backup tree.
        validate_submission(data, schema, check_patterns=self.check_patterns)

        submission = new_submission(form_id=form_id, data=data, ip_address=ip_address, user_agent=user_agent)
        await self.store.create(submission)

        result = await self.pipeline.run(submission, schema)
        apply_result(submission, result)
        try:
            await self.store.update(submission)
        except FormRelayError as exc:
            # The row exists and actions already ran; report the submission as accepted.
            logger.warning("submission_update_failed submission_id=%s", submission.id, exc_info=exc)
        return IntakeResult(submission=submission, schema=schema, result=result)

    async def reprocess(self, submission_id: str) -> IntakeResult:
        submission = await self.store.get(submission_id)
        schema = self.registry.require(submission.form_id)

        # Every action runs again from a clean slate, including ones that succeeded before.
        submission.processed = False
        submission.processed_at = None
        submission.error = ""

        result = await self.pipeline.run(submission, schema)
        apply_result(submission, result)
        await self.store.update(submission)
        return IntakeResult(submission=submission, schema=schema, result=result)
