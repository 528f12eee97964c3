"""
Async PostgreSQL access.

The engine is created on first use so importing the API does not require a
reachable database.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from urllib.parse import quote_plus

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool

from app.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_async_database_url(settings: Settings | None = None) -> str:
    """Build the asyncpg database URL from settings."""
    settings = settings or get_settings()
    if not settings.DB_NAME:
        raise ValueError("Database name is required (DB_NAME)")

    credentials = quote_plus(settings.DB_USER)
    if settings.DB_PASSWORD:
        credentials = f"{credentials}:{quote_plus(settings.DB_PASSWORD)}"
    return f"postgresql+asyncpg://{credentials}@{settings.DB_HOST}:{settings.DB_PORT}/{settings.DB_NAME}"


def create_async_database_engine(settings: Settings | None = None) -> AsyncEngine:
    """Create the async engine: NullPool in debug mode, a bounded queue pool otherwise."""
    settings = settings or get_settings()
    options: dict = {"echo": settings.DB_ECHO, "pool_pre_ping": True}

    if settings.DEBUG:
        logger.info("Creating async database engine (NullPool)")
        options["poolclass"] = NullPool
    else:
        logger.info(f"Creating async database engine (pool_size={settings.DB_POOL_SIZE})")
        options.update(
            poolclass=AsyncAdaptedQueuePool,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_recycle=settings.DB_POOL_RECYCLE,
            pool_timeout=settings.DB_POOL_TIMEOUT,
        )

    return create_async_engine(get_async_database_url(settings), **options)


def get_async_engine() -> AsyncEngine:
    """Shared engine, also used for session-level advisory locks."""
    global _engine
    if _engine is None:
        _engine = create_async_database_engine()
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_async_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding an async session.

    Commits when the request handler returns, rolls back on error. Use cases
    commit their own checkpoints, so the final commit is usually a no-op.
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.error(f"Async database error: {e}")
            await session.rollback()
            raise


@asynccontextmanager
async def get_async_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Session for work outside a request, e.g. scripts and migrations checks."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def dispose_async_engine() -> None:
    """Close all pooled connections (application shutdown)."""
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("Async database engine disposed")
