from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from formrelay.persistence.repos import analytics as analytics_repo
from formrelay.tests.utils.auth import ADMIN_USERNAME, WEBHOOK_TOKEN, admin_headers


async def _submit(client: AsyncClient, form_id: str, data: dict) -> str:
    response = await client.post("/api/forms/submit", json={"form_id": form_id, "data": data})
    assert response.status_code == 200
    return response.json()["id"]


@pytest.mark.asyncio
async def test_login_rejects_bad_credentials(client: AsyncClient) -> None:
    response = await client.post("/api/admin/login", json={"username": ADMIN_USERNAME, "password": "nope"})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid credentials"
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_admin_routes_require_bearer_session(client: AsyncClient) -> None:
    missing = await client.get("/api/admin/submissions")
    assert missing.status_code == 401
    assert missing.json()["error"] == "Authorization header required"

    malformed = await client.get("/api/admin/submissions", headers={"Authorization": "Token abc"})
    assert malformed.status_code == 401
    assert malformed.json()["error"] == "Invalid authorization format"

    unknown = await client.get("/api/admin/submissions", headers={"Authorization": "Bearer not-a-session"})
    assert unknown.status_code == 401
    assert unknown.json()["error"] == "Invalid or expired session"


@pytest.mark.asyncio
async def test_logout_ends_session(client: AsyncClient) -> None:
    headers = await admin_headers(client)
    assert (await client.post("/api/admin/logout", headers=headers)).status_code == 200
    assert (await client.get("/api/admin/submissions", headers=headers)).status_code == 401


@pytest.mark.asyncio
async def test_submission_management(client: AsyncClient) -> None:
    headers = await admin_headers(client)
    contact_id = await _submit(client, "contact", {"name": "Ada", "email": "ada@example.com", "message": "hi"})
    feedback_id = await _submit(client, "feedback-form", {"feedback": "great"})

    listing = await client.get("/api/admin/submissions", headers=headers)
    assert listing.status_code == 200
    assert {item["id"] for item in listing.json()["submissions"]} == {contact_id, feedback_id}

    feedback = await client.get("/api/admin/feedback", headers=headers)
    assert [item["id"] for item in feedback.json()["submissions"]] == [feedback_id]
    assert feedback.json()["form_id"] == "feedback-form"

    deleted = await client.delete(f"/api/admin/submissions/{contact_id}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["message"] == "Submission deleted successfully"

    gone = await client.get(f"/api/admin/submissions/{contact_id}", headers=headers)
    assert gone.status_code == 404
    assert gone.json()["error"] == "Submission not found"
    again = await client.delete(f"/api/admin/submissions/{contact_id}", headers=headers)
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_reprocess_returns_fresh_result(client: AsyncClient, email_transport) -> None:
    headers = await admin_headers(client)
    email_transport.fail_with = "relay unavailable"
    submission_id = await _submit(client, "contact", {"name": "Ada", "email": "ada@example.com", "message": "hi"})
    email_transport.fail_with = None

    response = await client.post(f"/api/admin/submissions/{submission_id}/reprocess", headers=headers)

    assert response.status_code == 200
    payload = response.json()
    assert payload["message"] == "Submission reprocessed successfully"
    assert payload["result"]["success"] is True
    assert [item["action_type"] for item in payload["result"]["actions"]] == ["send_email", "log"]

    detail = await client.get(f"/api/admin/submissions/{submission_id}", headers=headers)
    assert detail.json()["submission"]["processed"] is True


@pytest.mark.asyncio
async def test_welcome_email_webhook(client: AsyncClient, email_transport) -> None:
    submission_id = await _submit(
        client,
        "internal-testing-signup",
        {"name": "Ada", "email": "ada@example.com", "platform": "android"},
    )
    email_transport.sent.clear()

    response = await client.post(
        "/api/admin/send-welcome-email",
        json={"submission_id": submission_id, "email": "ada@example.com"},
        headers={"Authorization": f"Bearer {WEBHOOK_TOKEN}"},
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Welcome email sent to ada@example.com"
    assert email_transport.sent[0].subject == "Welcome to Internal Testing Signup - You're In!"

    # An admin session works too; anything else does not.
    headers = await admin_headers(client)
    by_admin = await client.post(
        "/api/admin/send-welcome-email",
        json={"submission_id": submission_id, "email": "ada@example.com"},
        headers=headers,
    )
    assert by_admin.status_code == 200
    rejected = await client.post(
        "/api/admin/send-welcome-email",
        json={"submission_id": submission_id, "email": "ada@example.com"},
        headers={"Authorization": "Bearer wrong"},
    )
    assert rejected.status_code == 401
    missing = await client.post(
        "/api/admin/send-welcome-email",
        json={"submission_id": "missing", "email": "ada@example.com"},
        headers={"Authorization": f"Bearer {WEBHOOK_TOKEN}"},
    )
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_analytics_cleanup(client: AsyncClient, services) -> None:
    headers = await admin_headers(client)
    stale_at = datetime.now(timezone.utc) - timedelta(days=200)
    async with services.database.session() as session:
        await analytics_repo.upsert_heartbeat(
            session,
            insert=services.database.backend.insert,
            server_hash="abandoned",
            version="0.1.0",
            ip_hash="x",
            seen_at=stale_at,
        )
        await session.commit()

    response = await client.post("/api/admin/analytics/cleanup", params={"days": "abc"}, headers=headers)

    assert response.status_code == 200
    payload = response.json()
    assert payload["removed"] == 1
    assert payload["days"] == services.settings.analytics_retention_days
    assert payload["message"] == "Cleaned up 1 inactive servers"

    unauthenticated = await client.post("/api/admin/analytics/cleanup")
    assert unauthenticated.status_code == 401
