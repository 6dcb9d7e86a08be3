from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from formrelay.domain.models import FormSubmission


logger = logging.getLogger(__name__)


class SubmissionBackupWriter:
    """Writes a non-authoritative JSON copy of each submission under a date-partitioned tree.

    Files are never read back by the service; they exist for forensic recovery only,
    so every failure is logged and swallowed.
    """

    def __init__(self, storage_dir: str | Path) -> None:
        self.storage_dir = Path(storage_dir)

    def backup_path(self, submission: FormSubmission) -> Path:
        day = submission.submitted_at.strftime("%Y-%m-%d")
        return self.storage_dir / day / f"{submission.form_id}_{submission.id}.json"

    def _write(self, path: Path, payload: dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2, sort_keys=True, default=str), encoding="utf-8")

    async def write(self, submission: FormSubmission) -> Path | None:
        # Runs after the row is committed; the database stays the source of truth.
        path = self.backup_path(submission)
        try:
            await asyncio.to_thread(self._write, path, submission.to_dict())
        except (OSError, TypeError, ValueError) as exc:
            logger.warning(
                "submission_backup_failed submission_id=%s path=%s",
                submission.id,
                path,
                exc_info=exc,
            )
            return None
        return path
