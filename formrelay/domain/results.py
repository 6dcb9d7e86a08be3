from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class ActionOutcome:
    action_type: str
    success: bool
    message: str
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "action_type": self.action_type,
            "success": self.success,
            "message": self.message,
        }
        if self.error:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True)
class ProcessingResult:
    submission_id: str
    form_id: str
    actions: tuple[ActionOutcome, ...] = ()
    processed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def success(self) -> bool:
        # An empty action list is vacuously successful.
        return all(outcome.success for outcome in self.actions)

    def failure_summary(self) -> str:
        # Each failing action's error followed by "; ", in configured order.
        return "".join(
            f"{outcome.error}; " for outcome in self.actions if not outcome.success and outcome.error
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "submission_id": self.submission_id,
            "form_id": self.form_id,
            "success": self.success,
            "actions": [outcome.to_dict() for outcome in self.actions],
            "processed_at": self.processed_at.isoformat(),
        }
