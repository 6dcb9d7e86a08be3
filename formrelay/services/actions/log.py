from __future__ import annotations

import json
import logging

from formrelay.domain.models import FormSubmission
from formrelay.domain.results import ActionOutcome
from formrelay.domain.schema import FormSchema, LogAction
from formrelay.services.actions.base import succeeded


logger = logging.getLogger(__name__)


class LogHandler:
    async def execute(self, action: LogAction, submission: FormSubmission, schema: FormSchema) -> ActionOutcome:
        logger.info(
            "log_action message=%s form_id=%s submission_id=%s data=%s",
            action.message,
            submission.form_id,
            submission.id,
            json.dumps(submission.data or {}, sort_keys=True, default=str),
        )
        return succeeded(action.action_type, "Action logged successfully")
