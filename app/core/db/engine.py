"""
Database Engine Configuration for FastAPI.

Supports:
- SQLite via aiosqlite (default, WAL mode for concurrent reads)
- PostgreSQL via asyncpg (hosted backend)
- run_db() for stores written against a synchronous Session
"""

import logging
from typing import Callable, Optional, TypeVar

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool, StaticPool

from app.core.config import config as settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _get_engine_options(database_url: str) -> dict:
    """
    Get engine options based on database type.
    SQLite requires special handling for async and concurrency.
    """
    is_sqlite = database_url.startswith("sqlite")

    options = {
        "echo": False,
        "future": True,
    }

    if is_sqlite:
        # In-memory databases live on a single connection, so it must be shared
        if ":memory:" in database_url:
            options["poolclass"] = StaticPool
            options["connect_args"] = {"check_same_thread": False}
        else:
            options["poolclass"] = NullPool
    else:
        options["pool_pre_ping"] = True
        if not settings.is_production:
            options["poolclass"] = NullPool

    return options


def _configure_sqlite_connection(dbapi_connection, connection_record):
    """
    Configure SQLite connection on every new connection.

    - WAL mode: readers don't block the writer
    - busy_timeout: wait for locks instead of failing immediately
    - foreign_keys: enforce referential integrity
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=30000")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


engine: Optional[AsyncEngine] = None
AsyncSessionLocal: Optional[async_sessionmaker] = None
database_url: str = ""


def configure_engine(url: str) -> AsyncEngine:
    """
    (Re)create the global engine and session factory for the given URL.
    Called at import time with DB_URL, and by tests to bind a throwaway database.
    """
    global engine, AsyncSessionLocal, database_url

    database_url = url
    engine = create_async_engine(url, **_get_engine_options(url))

    if url.startswith("sqlite") and ":memory:" not in url:
        # aiosqlite exposes pool events on the sync engine
        @event.listens_for(engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            _configure_sqlite_connection(dbapi_connection, connection_record)

    AsyncSessionLocal = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return engine


async def dispose_engine() -> None:
    if engine is not None:
        await engine.dispose()


configure_engine(settings.database_url)


async def run_db(fn: Callable[[Session], T]) -> T:
    """
    Run a synchronous-Session callable on the async engine.

    The callable runs in a single transaction: committed if it returns,
    rolled back if it raises (the exception is re-raised unchanged).
    """
    async with AsyncSessionLocal() as session:
        try:
            result = await session.run_sync(fn)
            await session.commit()
            return result
        except Exception:
            await session.rollback()
            raise


async def check_database_connection() -> bool:
    """
    Verify database connection is working.
    Useful for health checks and startup validation.
    """
    try:
        async with AsyncSessionLocal() as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False
