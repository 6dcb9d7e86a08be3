from __future__ import annotations

import asyncio
import logging

from formrelay.core.config import Settings
from formrelay.core.errors import EmailDeliveryError
from formrelay.domain.models import FormSubmission
from formrelay.domain.results import ActionOutcome
from formrelay.domain.schema import AddTesterAction, FormSchema
from formrelay.services.actions.base import failed, succeeded
from formrelay.services.email import EmailService, resolve_recipient
from formrelay.services.play_testers import (
    GOOGLE_CLIENT_ERRORS,
    EnrollmentError,
    TesterClientFactory,
    build_google_play_client,
    enroll_tester,
)


logger = logging.getLogger(__name__)


class AddTesterHandler:
    def __init__(
        self,
        settings: Settings,
        email: EmailService,
        client_factory: TesterClientFactory = build_google_play_client,
    ) -> None:
        self.settings = settings
        self.email = email
        self.client_factory = client_factory

    async def execute(
        self,
        action: AddTesterAction,
        submission: FormSubmission,
        schema: FormSchema,
    ) -> ActionOutcome:
        action_type = action.action_type
        if not self.settings.google_play_configured():
            return failed(
                action_type,
                "Google Play Console configuration missing",
                "Google Play Console not configured",
            )

        email = resolve_recipient(submission.data or {})
        if not email:
            return failed(
                action_type,
                "Email address required for Google Play testing",
                "No email address found in submission",
            )

        try:
            client = self.client_factory(self.settings)
        except GOOGLE_CLIENT_ERRORS as exc:
            return failed(
                action_type,
                "Google Play API initialization failed",
                f"Failed to initialize Google Play API: {exc}",
            )

        try:
            enrollment = await asyncio.to_thread(enroll_tester, client, email, action.track)
        except EnrollmentError as exc:
            logger.warning(
                "tester_enrollment_failed submission_id=%s track=%s",
                submission.id,
                action.track,
                exc_info=exc,
            )
            return failed(action_type, exc.summary, str(exc))

        message = f"Successfully added {enrollment.email} to {enrollment.track} testing track"
        if not action.send_confirmation:
            return succeeded(action_type, message)
        # A confirmation failure is reported alongside the enrollment, never instead of it.
        try:
            await self.email.send_confirmation(submission, schema)
        except EmailDeliveryError as exc:
            message += f" (Note: Confirmation email failed: {exc})"
        return succeeded(action_type, message)
