from __future__ import annotations

from formrelay.core.errors import EmailDeliveryError
from formrelay.domain.models import FormSubmission
from formrelay.domain.results import ActionOutcome
from formrelay.domain.schema import FormSchema, SendEmailAction
from formrelay.services.actions.base import failed, succeeded
from formrelay.services.email import EmailService, resolve_recipient


class SendEmailHandler:
    def __init__(self, email: EmailService) -> None:
        self.email = email

    def _is_welcome_submission(self, action: SendEmailAction, submission: FormSubmission) -> bool:
        if not action.welcome_platform:
            return False
        value = (submission.data or {}).get(action.platform_field)
        return isinstance(value, str) and value.strip().lower() == action.welcome_platform.lower()

    async def execute(
        self,
        action: SendEmailAction,
        submission: FormSubmission,
        schema: FormSchema,
    ) -> ActionOutcome:
        # Matching platforms skip manual approval and get the welcome email right away.
        if self._is_welcome_submission(action, submission):
            recipient = resolve_recipient(submission.data or {})
            if not recipient:
                return failed(action.action_type, "Failed to send email", "No email address found in submission")
            try:
                await self.email.send_welcome(submission, schema, recipient)
            except EmailDeliveryError as exc:
                return failed(action.action_type, "Failed to send welcome email", str(exc))
            return succeeded(action.action_type, f"Welcome email sent to {recipient}")

        try:
            sent = await self.email.send_confirmation(
                submission,
                schema,
                template=action.template,
                subject=action.subject,
            )
        except EmailDeliveryError as exc:
            return failed(action.action_type, "Failed to send email", str(exc))
        if not sent:
            return succeeded(action.action_type, "Confirmation email disabled for this form")
        return succeeded(action.action_type, "Email sent successfully")
