from __future__ import annotations

import pytest

from formrelay.core.config import Settings
from formrelay.core.errors import ConfigurationError, EmailDeliveryError
from formrelay.services.email import (
    EmailService,
    OutboundEmail,
    SendGridTransport,
    SmtpTransport,
    get_transport,
    resolve_recipient,
)
from formrelay.services.email_templates import DEFAULT_TEMPLATE, render_email, resolve_template_name
from formrelay.services.submission_store import new_submission
from formrelay.tests.utils.fakes import FakeEmailTransport


def _context(**overrides):
    context = {
        "subject": "Hi",
        "form_name": "Contact Us",
        "form_description": "",
        "data": {"name": "Ada"},
        "submission_id": "sub-1",
        "submitted_at": "2026-01-01 00:00:00 UTC",
        "platform": "",
        "testflight_url": "https://testflight.example/join",
        "play_testing_url": "https://play.example/testing",
    }
    context.update(overrides)
    return context


def test_recipient_resolution_order() -> None:
    assert resolve_recipient({"email_address": "b@example.com", "email": "a@example.com"}) == "a@example.com"
    assert resolve_recipient({"email": "  ", "Email": "c@example.com"}) == "c@example.com"
    assert resolve_recipient({"e_mail": " d@example.com "}) == "d@example.com"
    assert resolve_recipient({"contact": "x@example.com"}) == ""


def test_unknown_template_falls_back_to_default() -> None:
    assert resolve_template_name(None) == DEFAULT_TEMPLATE
    assert resolve_template_name("does-not-exist") == DEFAULT_TEMPLATE
    assert resolve_template_name("internal-testing") == "internal-testing"


def test_templates_escape_submitted_values() -> None:
    body = render_email("confirmation", _context(data={"name": "<script>alert(1)</script>"}))
    assert "<script>" not in body
    assert "&lt;script&gt;" in body


def test_welcome_template_branches_on_platform() -> None:
    ios = render_email("internal-testing", _context(platform="ios"))
    android = render_email("internal-testing", _context(platform="android"))
    assert "https://testflight.example/join" in ios
    assert "https://play.example/testing" not in ios
    assert "https://play.example/testing" in android


def test_transport_selection() -> None:
    assert isinstance(get_transport(Settings(_env_file=None, email_provider="smtp")), SmtpTransport)
    assert isinstance(get_transport(Settings(_env_file=None, email_provider="SendGrid")), SendGridTransport)
    with pytest.raises(ConfigurationError):
        get_transport(Settings(_env_file=None, email_provider="pigeon"))


def test_sendgrid_reports_not_implemented(settings) -> None:
    with pytest.raises(EmailDeliveryError) as excinfo:
        SendGridTransport(settings).send(OutboundEmail(to="a@example.com", subject="s", body="b"))
    assert "not yet implemented" in str(excinfo.value)


@pytest.mark.asyncio
async def test_confirmation_respects_form_policy(settings, registry) -> None:
    transport = FakeEmailTransport()
    service = EmailService(settings, transport)
    submission = new_submission(form_id="feedback-form", data={"email": "a@example.com", "feedback": "ok"})

    sent = await service.send_confirmation(submission, registry.require("feedback-form"))

    assert sent is False
    assert transport.sent == []


@pytest.mark.asyncio
async def test_confirmation_uses_policy_subject_and_renders_submission(settings, registry) -> None:
    transport = FakeEmailTransport()
    service = EmailService(settings, transport)
    submission = new_submission(
        form_id="contact",
        data={"name": "Ada", "email": "ada@example.com", "message": "hello"},
        submission_id="sub-42",
    )

    sent = await service.send_confirmation(submission, registry.require("contact"))

    assert sent is True
    message = transport.sent[0]
    assert message.to == "ada@example.com"
    assert message.subject == "Thanks for contacting us"
    assert message.is_html is True
    assert "sub-42" in message.body


@pytest.mark.asyncio
async def test_confirmation_without_recipient_fails(settings, registry) -> None:
    service = EmailService(settings, FakeEmailTransport())
    submission = new_submission(form_id="contact", data={"name": "Ada", "message": "hello"})
    with pytest.raises(EmailDeliveryError):
        await service.send_confirmation(submission, registry.require("contact"))


@pytest.mark.asyncio
async def test_test_email_is_plain_text(settings) -> None:
    transport = FakeEmailTransport()
    await EmailService(settings, transport).send_test("ops@example.com")
    assert transport.sent[0].is_html is False
    assert transport.sent[0].subject.endswith("Test Email")
