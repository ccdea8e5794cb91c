"""
Storage handle for agentcomm.

A ``Database`` is created once per process and passed around explicitly
(the FastAPI app keeps it on ``app.state.db``). Asking it for a session
before ``connect()`` fails with StorageUnavailableError.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from app import models  # noqa: F401  (registers tables on SQLModel.metadata)
from app.exceptions import StorageUnavailableError
from app.logging_config import get_logger

logger = get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine_for_url(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine with pool settings suited to the backend."""
    parsed = make_url(url)
    backend = parsed.get_backend_name()

    if backend == "sqlite":
        kwargs = {}
        if parsed.database in (None, "", ":memory:"):
            # One shared connection so every session sees the same in-memory DB
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}
        engine = create_async_engine(url, echo=echo, **kwargs)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        url,
        echo=echo,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=1800,  # Recycle connections after 30 min
        pool_pre_ping=True,  # Verify connection health before use
    )


class Database:
    """Owns the engine and session factory for one database URL."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise StorageUnavailableError("Database not connected")
        return self._engine

    async def connect(self, create_tables: bool = True) -> None:
        """Create the engine and, by default, any missing tables."""
        if self._engine is not None:
            return
        self._engine = create_engine_for_url(self.url, echo=self.echo)
        self._session_maker = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        if create_tables:
            async with self._engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)
        logger.info(f"Connected to database backend={self._engine.dialect.name}")

    async def disconnect(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_maker = None
        logger.info("Database connection closed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Transactional session: commit on success, roll back on any error."""
        if self._session_maker is None:
            raise StorageUnavailableError("Database not connected")
        async with self._session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session from the app's Database."""
    db: Optional[Database] = getattr(request.app.state, "db", None)
    if db is None:
        raise StorageUnavailableError("Database not connected")
    async with db.session() as session:
        yield session
