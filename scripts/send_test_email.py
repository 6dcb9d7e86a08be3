from __future__ import annotations

import argparse
import asyncio

from formrelay.core.config import get_settings
from formrelay.core.errors import FormRelayError
from formrelay.core.logging import configure_logging
from formrelay.services.email import EmailService, get_transport


async def _send(to: str) -> None:
    settings = get_settings()
    await EmailService(settings, get_transport(settings)).send_test(to)


def main() -> int:
    # Verify SMTP settings end to end by sending one plain-text message.
    configure_logging()
    parser = argparse.ArgumentParser(description="Send a test email with the configured provider")
    parser.add_argument("--to", required=True)
    args = parser.parse_args()
    try:
        asyncio.run(_send(args.to))
    except FormRelayError as exc:
        print(f"error={exc}")
        return 1
    print(f"sent_to={args.to}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
