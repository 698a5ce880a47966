"""Async engine and sessions for the staffing database.

One process-wide engine is created lazily from DatabaseSettings:
- SQLite (aiosqlite) uses NullPool and turns on foreign keys, which the
  assignment and timesheet tables depend on.
- PostgreSQL (asyncpg) uses a QueuePool; the seat-locking queries in the
  position service rely on its row locks.

Sessions never expire objects on commit, so services can keep returning
rows they just committed.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, QueuePool

from config.database import DatabaseSettings, get_database_settings

logger = logging.getLogger(__name__)

_async_engine: Optional[AsyncEngine] = None
_async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None

SQLITE_PRAGMAS = (
    "PRAGMA foreign_keys=ON",
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
)


def create_engine(settings: Optional[DatabaseSettings] = None) -> AsyncEngine:
    """Build a new engine; most callers want get_async_engine() instead."""
    settings = settings or get_database_settings()

    if settings.is_sqlite:
        pool = {"poolclass": NullPool}
        target = str(settings.sqlite_path)
    else:
        pool = {
            "poolclass": QueuePool,
            "pool_size": settings.pool_size,
            "max_overflow": settings.max_overflow,
            "pool_timeout": settings.pool_timeout,
            "pool_recycle": settings.pool_recycle,
            "pool_pre_ping": settings.pool_pre_ping,
        }
        target = f"{settings.host}:{settings.port}/{settings.name}"

    logger.info(f"Creating database engine ({settings.driver}, {target})")
    engine = create_async_engine(
        settings.async_url,
        echo=settings.echo_sql,
        connect_args=settings.get_connect_args(),
        **pool,
    )
    _setup_engine_events(engine, settings)
    return engine


def _setup_engine_events(engine: AsyncEngine, settings: DatabaseSettings) -> None:
    if not settings.is_sqlite:
        return

    @event.listens_for(engine.sync_engine, "connect")
    def apply_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        for pragma in SQLITE_PRAGMAS:
            cursor.execute(pragma)
        cursor.close()


def get_async_engine(settings: Optional[DatabaseSettings] = None) -> AsyncEngine:
    global _async_engine
    if _async_engine is None:
        _async_engine = create_engine(settings)
    return _async_engine


def get_async_session_factory(
    settings: Optional[DatabaseSettings] = None,
) -> async_sessionmaker[AsyncSession]:
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = async_sessionmaker(
            bind=get_async_engine(settings),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _async_session_factory


@asynccontextmanager
async def get_async_session(
    settings: Optional[DatabaseSettings] = None,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Session scope: commits when the block exits cleanly, rolls back and
    re-raises otherwise.

    Usage:
        async with get_async_session() as session:
            await PositionService(session).refresh_assignment_statuses()
    """
    session = get_async_session_factory(settings)()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def check_database_connection(settings: Optional[DatabaseSettings] = None) -> bool:
    """True when a ``SELECT 1`` round trip succeeds."""
    try:
        async with get_async_engine(settings).connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False


async def init_database(settings: Optional[DatabaseSettings] = None) -> None:
    """Create any missing staffing tables."""
    from database.models import Base

    async with get_async_engine(settings).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database schema ready ({len(Base.metadata.tables)} tables)")


async def close_database() -> None:
    """Dispose the engine (application shutdown and test teardown)."""
    global _async_engine, _async_session_factory

    if _async_engine is not None:
        await _async_engine.dispose()
        logger.info("Database engine closed")
    _async_engine = None
    _async_session_factory = None
