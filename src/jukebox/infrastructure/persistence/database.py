"""Async engine and transactional sessions."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from jukebox.config import Settings
from jukebox.infrastructure.persistence.models import Base

logger = logging.getLogger(__name__)

SQLITE_LOCK_TIMEOUT = 30


def _engine_options(url: str, echo: bool, pool_pre_ping: bool) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": echo, "pool_pre_ping": pool_pre_ping}
    if url.startswith("sqlite"):
        options["connect_args"] = {
            "check_same_thread": False,
            "timeout": SQLITE_LOCK_TIMEOUT,
        }
        # Hey future me - an in-memory SQLite DB exists only inside ONE connection.
        # StaticPool hands that same connection to every session; with the default pool
        # each session would open its own, empty database.
        if ":memory:" in url:
            options["poolclass"] = StaticPool
    return options


class Database:
    """Owns the engine; hands out one session per unit of work."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        url = settings.database.url
        self._engine = create_async_engine(
            url,
            **_engine_options(
                url, settings.database.echo, settings.database.pool_pre_ping
            ),
        )
        if url.startswith("sqlite"):
            event.listen(
                self._engine.sync_engine,
                "connect",
                _sqlite_on_connect(wal=":memory:" not in url),
            )
        self._session_factory = async_sessionmaker(
            self._engine, class_=AsyncSession, expire_on_commit=False
        )

    # Yo, this is THE transaction boundary. Repositories never commit; whatever runs inside
    # one `async with db.session_scope()` block lands together or not at all.
    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits when the block exits cleanly and rolls back otherwise."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """Create missing tables (existing ones are left as they are)."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_tables(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def close(self) -> None:
        await self._engine.dispose()


def _sqlite_on_connect(wal: bool) -> Any:
    """Connect hook for SQLite connections.

    Foreign keys are off by default in SQLite and tracks/plays rely on ON DELETE
    CASCADE. WAL lets the device's poll reads run while a state report writes.
    """

    def set_pragmas(dbapi_conn: Any, _connection_record: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if wal:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    return set_pragmas
