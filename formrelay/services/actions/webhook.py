from __future__ import annotations

from formrelay.domain.models import FormSubmission
from formrelay.domain.results import ActionOutcome
from formrelay.domain.schema import FormSchema, WebhookAction
from formrelay.services.actions.base import failed


class WebhookHandler:
    # Placeholder: the action is accepted in form config but delivery is not built yet.
    async def execute(self, action: WebhookAction, submission: FormSubmission, schema: FormSchema) -> ActionOutcome:
        return failed(action.action_type, "Webhook functionality coming soon", "Webhook action not yet implemented")
