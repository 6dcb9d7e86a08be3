from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Mapping

from formrelay.core.config import Settings
from formrelay.domain.models import FormSubmission
from formrelay.domain.results import ActionOutcome, ProcessingResult
from formrelay.domain.schema import (
    AddTesterAction,
    FormSchema,
    LogAction,
    SendEmailAction,
    UnknownAction,
    WebhookAction,
)
from formrelay.services.actions.add_tester import AddTesterHandler
from formrelay.services.actions.base import ActionHandler, failed
from formrelay.services.actions.log import LogHandler
from formrelay.services.actions.send_email import SendEmailHandler
from formrelay.services.actions.webhook import WebhookHandler
from formrelay.services.email import EmailService
from formrelay.services.play_testers import TesterClientFactory, build_google_play_client


logger = logging.getLogger(__name__)


class ActionPipeline:
    """Runs a form's actions in declared order; one failure never stops the rest."""

    def __init__(self, handlers: Mapping[type, ActionHandler]) -> None:
        self.handlers = dict(handlers)

    async def _run_one(self, action, submission: FormSubmission, schema: FormSchema) -> ActionOutcome:
        handler = self.handlers.get(type(action))
        if handler is None or isinstance(action, UnknownAction):
            return failed(
                action.action_type,
                "Unknown action type",
                f"Action type '{action.action_type}' is not supported",
            )
        try:
            return await handler.execute(action, submission, schema)
        except Exception as exc:  # noqa: BLE001 - a handler bug must not abort sibling actions
            logger.exception(
                "action_crashed action_type=%s submission_id=%s",
                action.action_type,
                submission.id,
            )
            return failed(action.action_type, "Action failed unexpectedly", str(exc) or type(exc).__name__)

    async def run(self, submission: FormSubmission, schema: FormSchema) -> ProcessingResult:
        outcomes: list[ActionOutcome] = []
        for action in schema.actions:
            outcome = await self._run_one(action, submission, schema)
            if not outcome.success:
                logger.warning(
                    "action_failed action_type=%s submission_id=%s error=%s",
                    outcome.action_type,
                    submission.id,
                    outcome.error,
                )
            outcomes.append(outcome)
        return ProcessingResult(
            submission_id=submission.id,
            form_id=submission.form_id,
            actions=tuple(outcomes),
            processed_at=datetime.now(timezone.utc),
        )


def build_pipeline(
    settings: Settings,
    email: EmailService,
    *,
    tester_client_factory: TesterClientFactory = build_google_play_client,
) -> ActionPipeline:
    return ActionPipeline(
        {
            SendEmailAction: SendEmailHandler(email),
            AddTesterAction: AddTesterHandler(settings, email, tester_client_factory),
            LogAction: LogHandler(),
            WebhookAction: WebhookHandler(),
        }
    )
