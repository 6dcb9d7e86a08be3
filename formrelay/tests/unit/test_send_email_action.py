from __future__ import annotations

import pytest

from formrelay.domain.schema import SendEmailAction
from formrelay.services.actions.send_email import SendEmailHandler
from formrelay.services.email import EmailService
from formrelay.services.submission_store import new_submission
from formrelay.tests.utils.fakes import FakeEmailTransport


def _handler(settings, transport: FakeEmailTransport) -> SendEmailHandler:
    return SendEmailHandler(EmailService(settings, transport))


@pytest.mark.asyncio
async def test_confirmation_path(settings, registry) -> None:
    transport = FakeEmailTransport()
    schema = registry.require("contact")
    submission = new_submission(form_id="contact", data={"name": "Ada", "email": "ada@example.com", "message": "m"})

    outcome = await _handler(settings, transport).execute(schema.actions[0], submission, schema)

    assert outcome.success is True
    assert outcome.message == "Email sent successfully"
    assert len(transport.sent) == 1


@pytest.mark.asyncio
async def test_matching_platform_takes_welcome_path(settings, registry) -> None:
    transport = FakeEmailTransport()
    schema = registry.require("internal-testing-signup")
    submission = new_submission(
        form_id=schema.id,
        data={"name": "Ada", "email": "ada@example.com", "platform": "iOS"},
    )

    outcome = await _handler(settings, transport).execute(schema.actions[0], submission, schema)

    assert outcome.success is True
    assert outcome.message == "Welcome email sent to ada@example.com"
    assert transport.sent[0].subject == "Welcome to Internal Testing Signup - You're In!"
    assert settings.testflight_url in transport.sent[0].body


@pytest.mark.asyncio
async def test_other_platform_gets_standard_confirmation(settings, registry) -> None:
    transport = FakeEmailTransport()
    schema = registry.require("internal-testing-signup")
    submission = new_submission(
        form_id=schema.id,
        data={"name": "Ada", "email": "ada@example.com", "platform": "android"},
    )

    outcome = await _handler(settings, transport).execute(schema.actions[0], submission, schema)

    assert outcome.message == "Email sent successfully"
    assert transport.sent[0].subject == "Thanks for signing up"


@pytest.mark.asyncio
async def test_disabled_policy_is_not_a_failure(settings, registry) -> None:
    transport = FakeEmailTransport()
    schema = registry.require("feedback-form")
    submission = new_submission(form_id=schema.id, data={"email": "a@example.com", "feedback": "nice"})

    outcome = await _handler(settings, transport).execute(SendEmailAction(), submission, schema)

    assert outcome.success is True
    assert outcome.message == "Confirmation email disabled for this form"
    assert transport.sent == []


@pytest.mark.asyncio
async def test_transport_failure_is_reported(settings, registry) -> None:
    transport = FakeEmailTransport(fail_with="relay refused")
    schema = registry.require("contact")
    submission = new_submission(form_id="contact", data={"name": "Ada", "email": "ada@example.com", "message": "m"})

    outcome = await _handler(settings, transport).execute(schema.actions[0], submission, schema)

    assert outcome.success is False
    assert outcome.message == "Failed to send email"
    assert outcome.error == "relay refused"
