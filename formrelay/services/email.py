from __future__ import annotations

import asyncio
from dataclasses import dataclass
from email.message import EmailMessage
import logging
import smtplib
import ssl
from typing import Any, Mapping, Protocol

from formrelay.core.config import Settings
from formrelay.core.errors import ConfigurationError, EmailDeliveryError
from formrelay.domain.models import FormSubmission
from formrelay.domain.schema import FormSchema
from formrelay.services.email_templates import WELCOME_TEMPLATE, render_email


logger = logging.getLogger(__name__)

# Checked in order; the first non-blank string wins.
EMAIL_FIELD_NAMES = ("email", "email_address", "Email", "Email_Address", "e_mail")

_SMTPS_PORT = 465


def resolve_recipient(data: Mapping[str, Any]) -> str:
    for name in EMAIL_FIELD_NAMES:
        value = data.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


@dataclass(frozen=True)
class OutboundEmail:
    to: str
    subject: str
    body: str
    is_html: bool = True


class EmailTransport(Protocol):
    def send(self, message: OutboundEmail) -> None:
        ...


class SmtpTransport:
    def __init__(self, settings: Settings) -> None:
        self.host = settings.smtp_host
        self.port = int(settings.smtp_port)
        self.username = settings.smtp_username
        self.password = settings.smtp_password
        self.sender = settings.smtp_from
        self.starttls = settings.smtp_starttls
        self.timeout_s = settings.smtp_timeout_s

    def _build(self, message: OutboundEmail) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = message.to
        msg["Subject"] = message.subject
        if message.is_html:
            msg.set_content(message.body, subtype="html")
        else:
            msg.set_content(message.body)
        return msg

    def send(self, message: OutboundEmail) -> None:
        if not self.host:
            raise EmailDeliveryError("SMTP host is not configured")
        msg = self._build(message)
        try:
            if self.port == _SMTPS_PORT:
                with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout_s) as server:
                    self._login(server)
                    server.send_message(msg, from_addr=self.sender, to_addrs=[message.to])
                return
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout_s) as server:
                server.ehlo()
                # Opportunistic upgrade; local relays such as MailHog do not offer TLS.
                if self.starttls and server.has_extn("starttls"):
                    server.starttls(context=ssl.create_default_context())
                    server.ehlo()
                self._login(server)
                server.send_message(msg, from_addr=self.sender, to_addrs=[message.to])
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailDeliveryError(f"failed to send SMTP email: {exc}") from exc

    def _login(self, server: smtplib.SMTP) -> None:
        if self.username and self.password:
            server.login(self.username, self.password)


class SendGridTransport:
    def __init__(self, settings: Settings) -> None:
        self.api_key = settings.sendgrid_api_key

    def send(self, message: OutboundEmail) -> None:
        raise EmailDeliveryError("SendGrid email provider not yet implemented")


def get_transport(settings: Settings) -> EmailTransport:
    provider = (settings.email_provider or "").strip().lower()
    if provider == "smtp":
        return SmtpTransport(settings)
    if provider == "sendgrid":
        return SendGridTransport(settings)
    raise ConfigurationError(f"Unsupported email provider: {settings.email_provider}")


class EmailService:
    def __init__(self, settings: Settings, transport: EmailTransport) -> None:
        self.settings = settings
        self.transport = transport

    def _context(self, submission: FormSubmission, schema: FormSchema, subject: str) -> dict[str, Any]:
        data = submission.data or {}
        return {
            "subject": subject,
            "form_name": schema.name,
            "form_description": schema.description,
            "data": data,
            "submission_id": submission.id,
            "submitted_at": submission.submitted_at.strftime("%Y-%m-%d %H:%M:%S UTC"),
            "platform": str(data.get("platform") or "").strip().lower(),
            "testflight_url": self.settings.testflight_url,
            "play_testing_url": self.settings.play_testing_url,
        }

    async def deliver(self, message: OutboundEmail) -> None:
        # smtplib blocks; keep it off the event loop.
        await asyncio.to_thread(self.transport.send, message)
        logger.info("email_sent to=%s subject=%s", message.to, message.subject)

    async def send_confirmation(
        self,
        submission: FormSubmission,
        schema: FormSchema,
        *,
        template: str | None = None,
        subject: str | None = None,
    ) -> bool:
        """Send the confirmation email; returns False when the form's policy disables it."""
        policy = schema.email
        if not policy.confirmation_enabled:
            return False
        recipient = resolve_recipient(submission.data or {})
        if not recipient:
            raise EmailDeliveryError("no email address found in submission data")
        resolved_subject = subject or policy.subject or f"Thank you for your {schema.name} submission"
        body = render_email(template or policy.template, self._context(submission, schema, resolved_subject))
        await self.deliver(OutboundEmail(to=recipient, subject=resolved_subject, body=body))
        return True

    async def send_welcome(self, submission: FormSubmission, schema: FormSchema, email: str) -> None:
        recipient = email.strip()
        if not recipient:
            raise EmailDeliveryError("no email address provided for welcome email")
        subject = f"Welcome to {schema.name} - You're In!"
        body = render_email(WELCOME_TEMPLATE, self._context(submission, schema, subject))
        await self.deliver(OutboundEmail(to=recipient, subject=subject, body=body))

    async def send_test(self, to: str) -> None:
        await self.deliver(
            OutboundEmail(
                to=to,
                subject=f"{self.settings.app_name} - Test Email",
                body=(
                    f"This is a test email from {self.settings.app_name}. "
                    "If you received this, email sending is working correctly!"
                ),
                is_html=False,
            )
        )
