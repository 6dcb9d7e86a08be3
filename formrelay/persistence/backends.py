from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable
from urllib.parse import quote_plus

from sqlalchemy.dialects import postgresql, sqlite

from formrelay.core.config import Settings
from formrelay.core.errors import ConfigurationError


@dataclass(frozen=True)
class StorageBackend:
    """One relational engine the store can run on, chosen once at startup."""

    name: str
    url: str
    engine_kwargs: dict[str, Any]
    # Dialect-specific INSERT construct exposing on_conflict_do_update.
    insert: Callable[..., Any]


def _sqlite_backend(settings: Settings) -> StorageBackend:
    url = settings.database_url or f"sqlite+aiosqlite:///{settings.db_name}"
    return StorageBackend(name="sqlite", url=url, engine_kwargs={}, insert=sqlite.insert)


def _postgres_backend(settings: Settings) -> StorageBackend:
    url = settings.database_url
    if not url:
        credentials = ""
        if settings.db_user:
            credentials = quote_plus(settings.db_user)
            if settings.db_password:
                credentials += f":{quote_plus(settings.db_password)}"
            credentials += "@"
        url = (
            f"postgresql+asyncpg://{credentials}{settings.db_host}:{settings.db_port}/{settings.db_name}"
        )
    engine_kwargs: dict[str, Any] = {
        "pool_pre_ping": True,
        "pool_size": max(1, int(settings.db_pool_size)),
        "max_overflow": max(0, int(settings.db_max_overflow)),
        "pool_timeout": 30,
        "pool_recycle": 1800,
    }
    # asyncpg takes ssl via connect args rather than the libpq sslmode query param.
    if settings.db_ssl_mode and settings.db_ssl_mode != "disable":
        engine_kwargs["connect_args"] = {"ssl": settings.db_ssl_mode}
    return StorageBackend(name="postgres", url=url, engine_kwargs=engine_kwargs, insert=postgresql.insert)


_BACKENDS: dict[str, Callable[[Settings], StorageBackend]] = {
    "sqlite": _sqlite_backend,
    "postgres": _postgres_backend,
    "postgresql": _postgres_backend,
}


def resolve_backend(settings: Settings) -> StorageBackend:
    # Fail fast on unknown types so a typo never silently falls back to SQLite.
    db_type = (settings.db_type or "").strip().lower()
    factory = _BACKENDS.get(db_type)
    if factory is None:
        raise ConfigurationError(f"Unsupported database type: {settings.db_type}")
    return factory(settings)
