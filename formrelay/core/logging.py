from __future__ import annotations

import logging

from formrelay.core.config import get_settings


_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_HANDLER_NAME = "formrelay"


def configure_logging(level: str | None = None) -> None:
    # Install one stream handler on the root logger; repeated app factories reuse it.
    resolved = (level or get_settings().log_level or "INFO").upper()
    root = logging.getLogger()
    root.setLevel(resolved)
    for handler in root.handlers:
        if handler.get_name() == _HANDLER_NAME:
            handler.setLevel(resolved)
            return
    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    handler.setLevel(resolved)
    root.addHandler(handler)
    # Per-request lines come from our middleware.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
