from __future__ import annotations

import pytest

from formrelay.domain.results import ActionOutcome, ProcessingResult
from formrelay.domain.schema import LogAction, WebhookAction, parse_form_schema
from formrelay.services.actions import ActionPipeline, build_pipeline
from formrelay.services.actions.webhook import WebhookHandler
from formrelay.services.email import EmailService
from formrelay.services.submission_store import new_submission
from formrelay.tests.utils.fakes import FakeEmailTransport, FakeTesterClient


class _ExplodingHandler:
    async def execute(self, action, submission, schema):
        raise RuntimeError("boom")


def _pipeline(settings) -> ActionPipeline:
    return build_pipeline(
        settings,
        EmailService(settings, FakeEmailTransport()),
        tester_client_factory=lambda _s: FakeTesterClient(),
    )


@pytest.mark.asyncio
async def test_actions_run_in_order_and_failures_accumulate(settings, registry) -> None:
    schema = registry.require("webhook-form")
    submission = new_submission(form_id=schema.id, data={"payload": "x"}, submission_id="sub-1")

    result = await _pipeline(settings).run(submission, schema)

    assert [outcome.action_type for outcome in result.actions] == ["log", "webhook", "carrier_pigeon"]
    assert [outcome.success for outcome in result.actions] == [True, False, False]
    assert result.actions[0].message == "Action logged successfully"
    assert result.actions[1].message == "Webhook functionality coming soon"
    assert result.actions[2].message == "Unknown action type"
    assert result.success is False
    assert result.failure_summary() == (
        "Webhook action not yet implemented; Action type 'carrier_pigeon' is not supported; "
    )


@pytest.mark.asyncio
async def test_handler_crash_does_not_stop_later_actions(settings, registry) -> None:
    schema = registry.require("webhook-form")
    submission = new_submission(form_id=schema.id, data={}, submission_id="sub-2")
    pipeline = ActionPipeline({LogAction: _ExplodingHandler(), WebhookAction: WebhookHandler()})

    result = await pipeline.run(submission, schema)

    assert len(result.actions) == 3
    assert result.actions[0].success is False
    assert result.actions[0].error == "boom"
    assert result.actions[1].action_type == "webhook"


@pytest.mark.asyncio
async def test_form_without_actions_is_vacuously_successful(settings) -> None:
    schema = parse_form_schema("bare", {"name": "Bare"})
    result = await _pipeline(settings).run(new_submission(form_id="bare", data={}, submission_id="s"), schema)
    assert result.actions == ()
    assert result.success is True
    assert result.failure_summary() == ""


def test_result_serialization_omits_empty_error() -> None:
    result = ProcessingResult(
        submission_id="s",
        form_id="f",
        actions=(
            ActionOutcome(action_type="log", success=True, message="ok"),
            ActionOutcome(action_type="webhook", success=False, message="no", error="not built"),
        ),
    )
    payload = result.to_dict()
    assert "error" not in payload["actions"][0]
    assert payload["actions"][1]["error"] == "not built"
    assert payload["success"] is False
