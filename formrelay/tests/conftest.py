from __future__ import annotations

from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from formrelay.apps.api.container import Services, build_services
from formrelay.apps.api.main import create_app
from formrelay.core.config import Settings
from formrelay.persistence.db import Database
from formrelay.services.registry import SchemaRegistry
from formrelay.tests.utils.auth import ADMIN_PASSWORD, ADMIN_USERNAME, ANALYTICS_SECRET, WEBHOOK_TOKEN
from formrelay.tests.utils.fakes import FakeEmailTransport, FakeTesterClient, NtfyRecorder
from formrelay.tests.utils.forms import TEST_FORMS


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    # Isolated sqlite file and backup tree per test; never read the developer's .env.
    return Settings(
        _env_file=None,
        db_type="sqlite",
        db_name=str(tmp_path / "forms.db"),
        forms_storage_dir=str(tmp_path / "submissions"),
        rate_limit_enabled=False,
        admin_username=ADMIN_USERNAME,
        admin_password=ADMIN_PASSWORD,
        analytics_secret_key=ANALYTICS_SECRET,
        welcome_webhook_token=WEBHOOK_TOKEN,
        google_service_account_file=str(tmp_path / "service-account.json"),
        google_package_name="com.example.app",
        ntfy_enabled=False,
        ntfy_url="https://ntfy.test/",
        ntfy_topic="forms",
        public_base_url="https://forms.example.com",
        testflight_url="https://testflight.apple.com/join/abc",
        play_testing_url="https://play.google.com/apps/testing/com.example.app",
    )


@pytest.fixture
def registry() -> SchemaRegistry:
    return SchemaRegistry.from_mapping(TEST_FORMS)


@pytest.fixture
def email_transport() -> FakeEmailTransport:
    return FakeEmailTransport()


@pytest.fixture
def tester_client() -> FakeTesterClient:
    return FakeTesterClient({"internal": ["existing@example.com"]})


@pytest.fixture
async def ntfy():
    recorder = NtfyRecorder()
    yield recorder
    if not recorder.client.is_closed:
        await recorder.client.aclose()


@pytest.fixture
async def database(settings: Settings):
    db = Database.from_settings(settings)
    await db.create_tables()
    yield db
    await db.dispose()


@pytest.fixture
async def services(settings, registry, email_transport, tester_client, ntfy):
    built = build_services(
        settings,
        registry=registry,
        email_transport=email_transport,
        tester_client_factory=lambda _settings: tester_client,
        notification_client=ntfy.client,
    )
    await built.startup()
    yield built
    await built.shutdown()


@pytest.fixture
async def client(services: Services):
    # ASGITransport skips lifespan, so the app runs on the pre-built services above.
    app = create_app(services.settings, services=services)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
