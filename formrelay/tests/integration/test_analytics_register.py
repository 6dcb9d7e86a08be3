from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from formrelay.persistence.repos import analytics as analytics_repo
from formrelay.services.analytics import AnalyticsRegister, Heartbeat, hash_ip


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2026, 6, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


def _beat(server_hash: str, version: str) -> Heartbeat:
    return Heartbeat(server_hash=server_hash, version=version, signature="unused")


@pytest.mark.asyncio
async def test_repeat_heartbeats_update_one_row(database, settings) -> None:
    clock = _Clock()
    register = AnalyticsRegister(database, settings, clock=clock)
    first_seen = clock.now

    await register.ingest(_beat("server-a", "1.0.0"), "203.0.113.1")
    clock.now += timedelta(days=2)
    await register.ingest(_beat("server-a", "1.1.0"), "203.0.113.2")

    async with database.session() as session:
        record = await analytics_repo.get_by_server_hash(session, "server-a")
    assert record is not None
    assert record.version == "1.1.0"
    assert record.first_seen == first_seen
    assert record.last_seen == clock.now
    # The IP hash recorded on first sight is kept.
    assert record.ip_hash == hash_ip("203.0.113.1")

    summary = await register.summarize()
    assert summary.total_count == 1


@pytest.mark.asyncio
async def test_summary_counts_only_recent_installs(database, settings) -> None:
    clock = _Clock()
    register = AnalyticsRegister(database, settings, clock=clock)

    await register.ingest(_beat("stale", "0.9.0"), "203.0.113.1")
    clock.now += timedelta(days=settings.analytics_active_window_days + 5)
    await register.ingest(_beat("fresh-1", "1.0.0"), "203.0.113.2")
    await register.ingest(_beat("fresh-2", "1.0.0"), "203.0.113.3")
    await register.ingest(_beat("fresh-3", "1.1.0"), "203.0.113.4")

    summary = await register.summarize()

    assert summary.total_count == 4
    assert summary.active_count == 3
    assert summary.version_breakdown == {"1.0.0": 2, "1.1.0": 1}
    assert summary.as_of == clock.now
    assert summary.to_dict()["version_breakdown"] == {"1.0.0": 2, "1.1.0": 1}


@pytest.mark.asyncio
async def test_sweep_removes_installs_older_than_retention(database, settings) -> None:
    clock = _Clock()
    register = AnalyticsRegister(database, settings, clock=clock)

    await register.ingest(_beat("old", "0.1.0"), "203.0.113.1")
    clock.now += timedelta(days=100)
    await register.ingest(_beat("new", "1.0.0"), "203.0.113.2")

    assert await register.sweep(90) == 1
    assert await register.sweep() == 0
    summary = await register.summarize()
    assert summary.total_count == 1


@pytest.mark.asyncio
async def test_concurrent_heartbeats_for_one_server_keep_one_row(database, settings) -> None:
    register = AnalyticsRegister(database, settings, clock=_Clock())

    await asyncio.gather(
        *(register.ingest(_beat("server-a", f"1.0.{n}"), f"203.0.113.{n}") for n in range(10))
    )

    summary = await register.summarize()
    assert summary.total_count == 1
    assert summary.active_count == 1
    assert sum(summary.version_breakdown.values()) == 1


@pytest.mark.asyncio
async def test_install_silent_for_31_days_counts_toward_total_only(database, settings) -> None:
    clock = _Clock()
    register = AnalyticsRegister(database, settings, clock=clock)

    await register.ingest(_beat("quiet", "0.9.0"), "203.0.113.1")
    clock.now += timedelta(days=31)

    summary = await register.summarize()

    assert summary.total_count == 1
    assert summary.active_count == 0
    assert summary.version_breakdown == {}
