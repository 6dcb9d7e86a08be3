from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from formrelay.core.config import Settings
from formrelay.domain.models import Base
from formrelay.persistence.backends import StorageBackend, resolve_backend


class Database:
    """Engine and session factory for the backend selected at startup."""

    def __init__(self, backend: StorageBackend) -> None:
        self.backend = backend
        self.engine = create_async_engine(backend.url, **backend.engine_kwargs)
        self.sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(resolve_backend(settings))

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.sessionmaker() as session:
            yield session

    async def create_tables(self) -> None:
        # Create-if-missing; alembic owns changes to existing deployments.
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
