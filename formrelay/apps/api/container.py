from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import httpx

from formrelay.apps.api.rate_limit import SlidingWindowRateLimiter
from formrelay.core.config import Settings
from formrelay.persistence.db import Database
from formrelay.services.actions import ActionPipeline, build_pipeline
from formrelay.services.admin_sessions import AdminSessionManager
from formrelay.services.analytics import AnalyticsRegister
from formrelay.services.backup import SubmissionBackupWriter
from formrelay.services.email import EmailService, EmailTransport, get_transport
from formrelay.services.intake import SubmissionIntake
from formrelay.services.notifications import NotificationDispatcher
from formrelay.services.play_testers import TesterClientFactory, build_google_play_client
from formrelay.services.registry import SchemaRegistry, load_schema_registry
from formrelay.services.submission_store import SubmissionStore
from formrelay.services.ttl_store import TTLStore


@dataclass
class Services:
    """Everything a request handler needs, created once per application instance."""

    settings: Settings
    registry: SchemaRegistry
    database: Database
    store: SubmissionStore
    email: EmailService
    pipeline: ActionPipeline
    intake: SubmissionIntake
    analytics: AnalyticsRegister
    notifications: NotificationDispatcher
    sessions: AdminSessionManager
    rate_limiter: SlidingWindowRateLimiter

    async def startup(self) -> None:
        await self.database.create_tables()

    async def shutdown(self) -> None:
        await self.notifications.aclose()
        await self.database.dispose()


def build_services(
    settings: Settings,
    *,
    registry: SchemaRegistry | None = None,
    database: Database | None = None,
    email_transport: EmailTransport | None = None,
    tester_client_factory: TesterClientFactory = build_google_play_client,
    notification_client: httpx.AsyncClient | None = None,
) -> Services:
    # Configuration problems (bad db_type, provider, forms file) surface here, at startup.
    registry = registry if registry is not None else load_schema_registry(settings.forms_config_path)
    database = database if database is not None else Database.from_settings(settings)
    store = SubmissionStore(database, SubmissionBackupWriter(settings.forms_storage_dir))
    email = EmailService(settings, email_transport if email_transport is not None else get_transport(settings))
    pipeline = build_pipeline(settings, email, tester_client_factory=tester_client_factory)
    return Services(
        settings=settings,
        registry=registry,
        database=database,
        store=store,
        email=email,
        pipeline=pipeline,
        intake=SubmissionIntake(registry, store, pipeline, check_patterns=settings.validate_field_patterns),
        analytics=AnalyticsRegister(database, settings),
        notifications=NotificationDispatcher(settings, client=notification_client),
        sessions=AdminSessionManager(settings, TTLStore[datetime]()),
        rate_limiter=SlidingWindowRateLimiter(
            TTLStore[tuple[float, ...]](),
            limit=settings.rate_limit_requests_per_minute,
        ),
    )
