from __future__ import annotations

from datetime import datetime, timezone
import json
from pathlib import Path

import pytest

from formrelay.services.backup import SubmissionBackupWriter
from formrelay.services.submission_store import new_submission


def _submission():
    return new_submission(
        form_id="contact",
        data={"email": "ada@example.com"},
        submission_id="sub-9",
        submitted_at=datetime(2026, 3, 14, 9, 26, tzinfo=timezone.utc),
    )


@pytest.mark.asyncio
async def test_backup_is_date_partitioned(tmp_path: Path) -> None:
    writer = SubmissionBackupWriter(tmp_path / "submissions")

    path = await writer.write(_submission())

    assert path == tmp_path / "submissions" / "2026-03-14" / "contact_sub-9.json"
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["id"] == "sub-9"
    assert payload["data"] == {"email": "ada@example.com"}


@pytest.mark.asyncio
async def test_backup_failure_is_swallowed(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")

    assert await SubmissionBackupWriter(blocker).write(_submission()) is None
