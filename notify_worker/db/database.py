import asyncio
from typing import AsyncGenerator, Dict, Optional
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy import text

from notify_worker.core.config import settings
from notify_worker.core.errors import ConfigurationError
from notify_worker.core.setup_logger import db_logger
from notify_worker.core.logger import warning, info


Base = declarative_base()

# One engine/session factory per database URL, shared by every invocation in the process
_engines: Dict[str, AsyncEngine] = {}
_session_factories: Dict[str, async_sessionmaker] = {}


def _engine_kwargs(database_url: str) -> dict:
    kwargs = {"pool_pre_ping": True, "echo": settings.DEBUG}
    # Bounded asyncpg pools; sqlite uses its own pool class
    if not database_url.startswith("sqlite"):
        kwargs["pool_size"] = 5
        kwargs["max_overflow"] = 10
    return kwargs


def get_engine(database_url: str) -> AsyncEngine:
    engine = _engines.get(database_url)
    if engine is None:
        engine = create_async_engine(database_url, **_engine_kwargs(database_url))
        _engines[database_url] = engine
    return engine


def get_session_factory(database_url: Optional[str] = None) -> async_sessionmaker:
    """
    Get (or lazily create) the session factory for a database URL

    Args:
        database_url: async SQLAlchemy URL, defaults to the configured one

    Raises:
        ConfigurationError: no database URL configured
    """
    database_url = database_url or settings.async_database_url
    if not database_url:
        raise ConfigurationError("Database env missing (DB_URL)")

    factory = _session_factories.get(database_url)
    if factory is None:
        factory = async_sessionmaker(
            bind=get_engine(database_url),
            class_=AsyncSession,
            expire_on_commit=False
        )
        _session_factories[database_url] = factory
    return factory


async def connect_with_retry(database_url: Optional[str] = None, retries=5, delay=3) -> AsyncEngine:
    """Check the database is reachable, retrying a few times on startup."""
    database_url = database_url or settings.async_database_url
    if not database_url:
        raise ConfigurationError("Database env missing (DB_URL)")
    engine = get_engine(database_url)

    for attempt in range(retries):
        try:
            async with engine.begin() as connection:
                await connection.execute(text("SELECT 1"))
            info(db_logger, "Database connection verified")
            return engine
        except Exception as e:
            if attempt == retries - 1:
                raise
            warning(db_logger, "Database connection attempt failed, retrying", context={
                "attempt": attempt + 1,
                "delay_seconds": delay,
                "error": str(e),
            })
            await asyncio.sleep(delay)


async def close_database():
    """Dispose every engine created by this process."""
    for engine in list(_engines.values()):
        await engine.dispose()
    _engines.clear()
    _session_factories.clear()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for async database sessions."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
