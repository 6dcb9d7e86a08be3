from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import httpx

from formrelay.core.config import Settings
from formrelay.core.errors import NotificationError
from formrelay.domain.models import FormSubmission
from formrelay.domain.results import ProcessingResult
from formrelay.domain.schema import FormSchema
from formrelay.services.email import resolve_recipient


logger = logging.getLogger(__name__)

SUCCESS_TAGS = ["white_check_mark", "forms"]
FAILURE_TAGS = ["x", "forms", "error"]
SUCCESS_PRIORITY = 3
FAILURE_PRIORITY = 4


def _format_value(key: str, value: Any) -> str:
    if key == "platform":
        platform = "iOS (TestFlight)" if value == "ios" else "Android"
        return f"{key}: {platform}"
    if key == "wantsNews":
        wants = "Yes" if value is True or value == "true" else "No"
        return f"News Updates: {wants}"
    return f"{key}: {value}"


def format_submission_message(
    submission: FormSubmission,
    result: ProcessingResult,
    form_name: str,
) -> str:
    status = "Successfully processed" if result.success else "Processing failed"
    lines = [
        status,
        f"Form: {form_name}",
        f"Submission ID: {submission.id[:8]}",
        f"Submitted: {submission.submitted_at.strftime('%Y-%m-%d %H:%M:%S')}",
        f"IP Address: {submission.ip_address or 'unknown'}",
        "",
        "Data:",
    ]
    data = submission.data or {}
    lines.extend(_format_value(key, data[key]) for key in sorted(data))
    if not result.success:
        lines.extend(["", "Action Results:"])
        for outcome in result.actions:
            marker = "OK" if outcome.success else "FAILED"
            lines.append(f"[{marker}] {outcome.action_type}: {outcome.message}")
            if outcome.error:
                lines.append(f"   Error: {outcome.error}")
    return "\n".join(lines)


class NotificationDispatcher:
    """Publishes human-readable events to an ntfy topic.

    ``dispatch_submission`` is fire-and-forget: it schedules the publish on the
    running loop and returns immediately. Publish failures are logged and never
    reach the request that triggered them.
    """

    def __init__(self, settings: Settings, *, client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        self._client = client
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.settings.ntfy_enabled and self.settings.ntfy_url)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.ntfy_timeout_s)
        return self._client

    def _welcome_button(self, submission: FormSubmission, schema: FormSchema) -> dict[str, Any] | None:
        # Offer a manual welcome for platforms that did not get one automatically.
        action = schema.welcome_action()
        token = self.settings.welcome_webhook_token
        if action is None or not token:
            return None
        data = submission.data or {}
        platform = data.get(action.platform_field)
        if not isinstance(platform, str) or not platform.strip():
            return None
        if platform.strip().lower() == (action.welcome_platform or "").lower():
            return None
        email = resolve_recipient(data)
        if not email:
            return None
        return {
            "action": "http",
            "label": "Send Welcome Email",
            "url": f"{self.settings.public_base_url.rstrip('/')}/api/admin/send-welcome-email",
            "method": "POST",
            "headers": {"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            "body": json.dumps({"submission_id": submission.id, "email": email}),
        }

    def build_submission_message(
        self,
        submission: FormSubmission,
        result: ProcessingResult,
        schema: FormSchema | None,
    ) -> dict[str, Any]:
        form_name = schema.name if schema is not None else submission.form_id
        message: dict[str, Any] = {
            "topic": self.settings.ntfy_topic,
            "title": f"Form Submission: {form_name}",
            "message": format_submission_message(submission, result, form_name),
            "tags": list(SUCCESS_TAGS if result.success else FAILURE_TAGS),
            "priority": SUCCESS_PRIORITY if result.success else FAILURE_PRIORITY,
        }
        if result.success and schema is not None:
            button = self._welcome_button(submission, schema)
            if button is not None:
                message["actions"] = [button]
        return message

    async def publish(self, message: dict[str, Any]) -> None:
        headers = {"Content-Type": "application/json"}
        if self.settings.ntfy_token:
            headers["Authorization"] = f"Bearer {self.settings.ntfy_token}"
        try:
            response = await self._get_client().post(
                self.settings.ntfy_url,
                content=json.dumps(message).encode("utf-8"),
                headers=headers,
                timeout=self.settings.ntfy_timeout_s,
            )
        except httpx.HTTPError as exc:
            raise NotificationError(f"failed to send ntfy notification: {exc}") from exc
        if response.status_code != 200:
            raise NotificationError(f"ntfy server returned status {response.status_code}")

    async def _publish_quietly(self, message: dict[str, Any], *, context: str) -> None:
        try:
            await self.publish(message)
        except NotificationError as exc:
            logger.warning("notification_send_failed context=%s", context, exc_info=exc)

    def dispatch_submission(
        self,
        submission: FormSubmission,
        result: ProcessingResult,
        schema: FormSchema | None,
    ) -> asyncio.Task[None] | None:
        if not self.enabled:
            return None
        message = self.build_submission_message(submission, result, schema)
        task = asyncio.create_task(self._publish_quietly(message, context=f"submission:{submission.id}"))
        # Hold a reference until completion so the task is not garbage collected mid-flight.
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def send_custom(self, title: str, message: str, tags: list[str], priority: int) -> bool:
        if not self.enabled:
            return False
        await self.publish(
            {
                "topic": self.settings.ntfy_topic,
                "title": title,
                "message": message,
                "tags": list(tags),
                "priority": priority,
            }
        )
        return True

    async def send_test(self) -> bool:
        return await self.send_custom(
            "Test Notification",
            f"{self.settings.app_name} is running and notifications are working!",
            ["gear", "test"],
            3,
        )

    async def drain(self, timeout_s: float = 5.0) -> None:
        if not self._tasks:
            return
        pending = list(self._tasks)
        _done, still_pending = await asyncio.wait(pending, timeout=timeout_s)
        for task in still_pending:
            task.cancel()

    async def aclose(self) -> None:
        await self.drain()
        if self._client is not None:
            await self._client.aclose()
            self._client = None
