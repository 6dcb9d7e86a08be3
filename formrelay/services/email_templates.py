from __future__ import annotations

from typing import Any

from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import ImmutableSandboxedEnvironment

from formrelay.core.errors import EmailDeliveryError


DEFAULT_TEMPLATE = "confirmation"
WELCOME_TEMPLATE = "internal-testing"

_STYLE = """
    body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { background-color: #2E7D32; color: white; padding: 20px; text-align: center; }
    .content { padding: 20px; background-color: #f9f9f9; }
    .footer { padding: 20px; text-align: center; color: #666; }
    .data-table { width: 100%; border-collapse: collapse; margin: 20px 0; }
    .data-table th, .data-table td { border: 1px solid #ddd; padding: 8px; text-align: left; }
    .app-link { background-color: #4CAF50; padding: 15px; text-align: center; border-radius: 8px; margin: 20px 0; }
    .app-link a { color: white; text-decoration: none; font-size: 18px; font-weight: bold; }
"""

TEMPLATES: dict[str, str] = {
    "confirmation": """<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <title>{{ subject }}</title>
  <style>""" + _STYLE + """</style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h1>{{ form_name }}</h1>
      <p>Thank you for your submission!</p>
    </div>
    <div class="content">
      <p>Dear {{ data.get("name") or "there" }},</p>
      <p>We have successfully received your submission for {{ form_name }}.</p>
      <h3>Submission Details:</h3>
      <table class="data-table">
        {% for key, value in data | dictsort %}
        <tr><th>{{ key }}</th><td>{{ value }}</td></tr>
        {% endfor %}
      </table>
      <p><strong>Submission ID:</strong> {{ submission_id }}</p>
      <p><strong>Submitted at:</strong> {{ submitted_at }}</p>
      {% if form_description %}<p>{{ form_description }}</p>{% endif %}
    </div>
    <div class="footer">
      <p>This is an automated message. Please do not reply to this email.</p>
    </div>
  </div>
</body>
</html>
""",
    "internal-testing": """<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <title>{{ subject }}</title>
  <style>""" + _STYLE + """</style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h1>Welcome to {{ form_name }}!</h1>
    </div>
    <div class="content">
      <p>Hi {{ data.get("name") or "there" }},</p>
      <p><strong>You've been added to internal testing.</strong> This email is your invitation to the beta build.</p>
      {% if platform == "ios" %}
      {% if testflight_url %}
      <div class="app-link" style="background-color: #007AFF;">
        <a href="{{ testflight_url }}" target="_blank">Join the iOS TestFlight beta</a>
      </div>
      {% endif %}
      <p>Install TestFlight from the App Store first, then open the link above on your device.</p>
      {% else %}
      {% if play_testing_url %}
      <div class="app-link">
        <a href="{{ play_testing_url }}" target="_blank">Download the beta from Google Play</a>
      </div>
      {% endif %}
      <p>Open the link above while signed in to Google Play with this email address.</p>
      {% endif %}
      <p>Thanks for helping us test. Reply to your original contact with any feedback.</p>
    </div>
    <div class="footer">
      <p>Submission ID: {{ submission_id }}</p>
    </div>
  </div>
</body>
</html>
""",
}

_env = ImmutableSandboxedEnvironment(autoescape=True, undefined=StrictUndefined, trim_blocks=True, lstrip_blocks=True)


def resolve_template_name(name: str | None) -> str:
    # Missing and unrecognized names both fall back to the confirmation template.
    if name and name in TEMPLATES:
        return name
    return DEFAULT_TEMPLATE


def render_email(name: str | None, context: dict[str, Any]) -> str:
    template_name = resolve_template_name(name)
    try:
        return _env.from_string(TEMPLATES[template_name]).render(**context)
    except TemplateError as exc:
        raise EmailDeliveryError(f"failed to render email template: {exc}") from exc
