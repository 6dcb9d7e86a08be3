from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
import hashlib
import hmac
import logging
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError

from formrelay.core.config import Settings
from formrelay.core.errors import PersistenceError
from formrelay.persistence.db import Database
from formrelay.persistence.repos import analytics as analytics_repo


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Heartbeat:
    server_hash: str
    version: str
    signature: str


@dataclass(frozen=True)
class AnalyticsSummary:
    total_count: int
    active_count: int
    version_breakdown: dict[str, int] = field(default_factory=dict)
    as_of: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_count": self.total_count,
            "active_count": self.active_count,
            "version_breakdown": dict(self.version_breakdown),
            "as_of": self.as_of.isoformat(),
        }


def compute_signature(secret: str, server_hash: str, version: str, source_ip: str) -> str:
    # HMAC-SHA256 over server_hash + version + source_ip, hex encoded.
    payload = f"{server_hash}{version}{source_ip}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def hash_ip(source_ip: str) -> str:
    return hashlib.sha256(source_ip.encode("utf-8")).hexdigest()


def _short(server_hash: str) -> str:
    return server_hash[:8]


class AnalyticsRegister:
    def __init__(
        self,
        database: Database,
        settings: Settings,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.database = database
        self.secret = settings.analytics_secret_key
        self.active_window = timedelta(days=settings.analytics_active_window_days)
        self.default_retention_days = settings.analytics_retention_days
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def verify_signature(self, heartbeat: Heartbeat, source_ip: str) -> bool:
        # Never raises; an unconfigured secret rejects everything.
        if not self.secret:
            logger.warning("analytics_secret_missing server_hash=%s", _short(heartbeat.server_hash))
            return False
        try:
            expected = compute_signature(self.secret, heartbeat.server_hash, heartbeat.version, source_ip)
            valid = hmac.compare_digest(heartbeat.signature.encode("utf-8"), expected.encode("utf-8"))
        except (AttributeError, TypeError, UnicodeError):
            valid = False
        if not valid:
            logger.warning("analytics_invalid_signature server_hash=%s", _short(heartbeat.server_hash))
        return valid

    async def ingest(self, heartbeat: Heartbeat, source_ip: str) -> None:
        now = self._clock()
        try:
            async with self.database.session() as session:
                existing = await analytics_repo.get_by_server_hash(session, heartbeat.server_hash)
                await analytics_repo.upsert_heartbeat(
                    session,
                    insert=self.database.backend.insert,
                    server_hash=heartbeat.server_hash,
                    version=heartbeat.version,
                    ip_hash=hash_ip(source_ip),
                    seen_at=now,
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to process analytics") from exc
        # The lookup only picks the log line; the upsert alone decides insert vs update.
        if existing is None:
            logger.info(
                "analytics_server_registered server_hash=%s version=%s",
                _short(heartbeat.server_hash),
                heartbeat.version,
            )
        else:
            logger.info(
                "analytics_server_checkin server_hash=%s version=%s previous_version=%s",
                _short(heartbeat.server_hash),
                heartbeat.version,
                existing.version,
            )

    async def summarize(self) -> AnalyticsSummary:
        now = self._clock()
        threshold = now - self.active_window
        try:
            async with self.database.session() as session:
                total = await analytics_repo.count_all(session)
                active = await analytics_repo.count_seen_after(session, threshold)
                versions = await analytics_repo.version_counts_seen_after(session, threshold)
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to retrieve analytics summary") from exc
        return AnalyticsSummary(total_count=total, active_count=active, version_breakdown=versions, as_of=now)

    async def sweep(self, retention_days: int | None = None) -> int:
        days = self.default_retention_days if retention_days is None else int(retention_days)
        cutoff = self._clock() - timedelta(days=days)
        try:
            async with self.database.session() as session:
                removed = await analytics_repo.delete_seen_before(session, cutoff)
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to cleanup analytics") from exc
        logger.info("analytics_cleanup removed=%s retention_days=%s", removed, days)
        return removed
