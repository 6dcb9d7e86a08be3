from __future__ import annotations

from typing import Protocol

from formrelay.domain.models import FormSubmission
from formrelay.domain.results import ActionOutcome
from formrelay.domain.schema import Action, FormSchema


class ActionHandler(Protocol):
    async def execute(self, action: Action, submission: FormSubmission, schema: FormSchema) -> ActionOutcome:
        ...


def succeeded(action_type: str, message: str) -> ActionOutcome:
    return ActionOutcome(action_type=action_type, success=True, message=message)


def failed(action_type: str, message: str, error: str) -> ActionOutcome:
    return ActionOutcome(action_type=action_type, success=False, message=message, error=error)
