from __future__ import annotations

import asyncio

from formrelay.core.config import get_settings
from formrelay.core.errors import NotificationError
from formrelay.core.logging import configure_logging
from formrelay.services.notifications import NotificationDispatcher


async def _send() -> bool:
    dispatcher = NotificationDispatcher(get_settings())
    try:
        return await dispatcher.send_test()
    finally:
        await dispatcher.aclose()


def main() -> int:
    configure_logging()
    try:
        sent = asyncio.run(_send())
    except NotificationError as exc:
        print(f"error={exc}")
        return 1
    if not sent:
        print("notifications_disabled=true")
        return 1
    print("sent=true")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
