from __future__ import annotations

from httpx import AsyncClient


ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "correct-horse"
ANALYTICS_SECRET = "analytics-secret"
WEBHOOK_TOKEN = "welcome-hook-token"


async def admin_headers(client: AsyncClient) -> dict[str, str]:
    # Log in through the API so tests exercise the real session store.
    response = await client.post(
        "/api/admin/login",
        json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}
