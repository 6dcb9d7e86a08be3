from __future__ import annotations

from datetime import datetime
from typing import Any, Callable
from uuid import uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from formrelay.domain.models import AnalyticsRecord


async def get_by_server_hash(session: AsyncSession, server_hash: str) -> AnalyticsRecord | None:
    result = await session.execute(select(AnalyticsRecord).where(AnalyticsRecord.server_hash == server_hash))
    return result.scalar_one_or_none()


async def upsert_heartbeat(
    session: AsyncSession,
    *,
    insert: Callable[..., Any],
    server_hash: str,
    version: str,
    ip_hash: str,
    seen_at: datetime,
) -> None:
    # Single statement keyed on the unique server_hash; first_seen is never in the update set.
    stmt = insert(AnalyticsRecord).values(
        id=str(uuid4()),
        server_hash=server_hash,
        version=version,
        first_seen=seen_at,
        last_seen=seen_at,
        ip_hash=ip_hash,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[AnalyticsRecord.server_hash],
        set_={"version": stmt.excluded.version, "last_seen": stmt.excluded.last_seen},
    )
    await session.execute(stmt)


async def count_all(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(AnalyticsRecord))
    return int(result.scalar_one())


async def count_seen_after(session: AsyncSession, threshold: datetime) -> int:
    result = await session.execute(
        select(func.count()).select_from(AnalyticsRecord).where(AnalyticsRecord.last_seen > threshold)
    )
    return int(result.scalar_one())


async def version_counts_seen_after(session: AsyncSession, threshold: datetime) -> dict[str, int]:
    result = await session.execute(
        select(AnalyticsRecord.version, func.count())
        .where(AnalyticsRecord.last_seen > threshold)
        .group_by(AnalyticsRecord.version)
    )
    return {str(version): int(count) for version, count in result.all()}


async def delete_seen_before(session: AsyncSession, cutoff: datetime) -> int:
    result = await session.execute(delete(AnalyticsRecord).where(AnalyticsRecord.last_seen < cutoff))
    return int(result.rowcount or 0)
