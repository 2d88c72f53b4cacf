from __future__ import annotations

import logging
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from settings.config import settings
from db.models import Base

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _dsn() -> str:
    # Prefer pgbouncer when configured
    return settings.PGBOUNCER_DSN or settings.POSTGRES_DSN


def get_engine() -> AsyncEngine:
    global _engine, _session_factory
    if _engine is None:
        _engine = create_async_engine(
            _dsn(),
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_pre_ping=True,
        )
        _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        get_engine()
    assert _session_factory is not None
    return _session_factory


async def get_async_session() -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency for request-scoped AsyncSession.
    """
    session_factory = get_session_factory()
    async with session_factory() as session:
        yield session


async def init_postgres() -> None:
    """
    Initialize the engine and verify connectivity.
    Creates the envelopes table when DB_CREATE_SCHEMA is set.
    """
    engine = get_engine()
    async with engine.begin() as conn:
        if settings.DB_CREATE_SCHEMA:
            logger.info("Creating database schema")
            await conn.run_sync(Base.metadata.create_all)
        else:
            # no-op transaction for connectivity test
            await conn.run_sync(lambda _: None)


async def close_postgres() -> None:
    """
    Dispose the engine on application shutdown, draining pooled connections.
    """
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
