from __future__ import annotations

import argparse
import asyncio

from formrelay.core.config import get_settings
from formrelay.core.logging import configure_logging
from formrelay.persistence.db import Database
from formrelay.services.analytics import AnalyticsRegister


async def _run_cleanup(days: int) -> None:
    settings = get_settings()
    database = Database.from_settings(settings)
    try:
        await database.create_tables()
        removed = await AnalyticsRegister(database, settings).sweep(days)
        print(f"removed_installations={removed}")
    finally:
        await database.dispose()


def main() -> None:
    # Delete installations whose last heartbeat predates the retention window.
    configure_logging()
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Remove inactive analytics installations")
    parser.add_argument("--days", type=int, default=None)
    args = parser.parse_args()

    days = args.days if args.days and args.days > 0 else settings.analytics_retention_days
    asyncio.run(_run_cleanup(days))


if __name__ == "__main__":
    main()
