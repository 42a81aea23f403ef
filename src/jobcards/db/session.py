"""Async SQLAlchemy engine and session helpers.

API requests get a session per request through :func:`get_session`;
the CLI, seed loader and background jobs open one with
:func:`session_scope`. Both commit on success and roll back on error.
"""

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from jobcards.config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(
    settings.database_url,
    echo=settings.db_echo,
    pool_pre_ping=True,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Open a session outside a request; commit on exit, roll back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields a session committed when the handler returns."""
    async with session_scope() as session:
        yield session


async def init_db() -> None:
    """Check the database is reachable and the schema has been migrated."""
    async with engine.connect() as conn:
        migrated = await conn.run_sync(
            lambda sync_conn: inspect(sync_conn).has_table("alembic_version")
        )
    if not migrated:
        logger.warning("Database schema not found; run `alembic upgrade head`")
    else:
        logger.info("Connected to %s", settings.postgres_db)


async def close_db() -> None:
    """Close the database engine (called on app shutdown)."""
    await engine.dispose()
