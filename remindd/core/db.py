# remindd/core/db.py

import logging
from contextlib import asynccontextmanager

from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

log = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def build_db_url(settings) -> URL | str:
    """
    Construct the URL from our validated Pydantic settings.
    DATABASE_URL wins; otherwise the DB_* parts are assembled with the async driver.
    """
    if settings.DATABASE_URL:
        return settings.DATABASE_URL
    if not (settings.DB_HOST and settings.DB_NAME):
        raise ValueError("SQL backend needs DATABASE_URL or DB_HOST and DB_NAME.")
    # Notice we use an async driver (postgresql+asyncpg) to stay non-blocking
    return URL.create(
        drivername=settings.DB_DRIVER,
        username=settings.DB_USER,
        password=settings.DB_PASSWORD,
        host=settings.DB_HOST,
        port=settings.DB_PORT,
        database=settings.DB_NAME,
    )


def create_engine(db_url: URL | str) -> AsyncEngine:
    try:
        engine = create_async_engine(db_url, echo=False)
        log.info("Async SQLAlchemy engine initialized successfully.")
        return engine
    except Exception as e:
        log.critical(f"Failed to initialize database engine: {e}")
        raise


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False so attributes stay readable after the transaction closes.
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def create_tables(engine: AsyncEngine) -> None:
    """Creates missing tables; existing ones are left untouched."""
    # Import models so Base knows about them before create_all runs
    import remindd.core.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def session_scope(factory: async_sessionmaker[AsyncSession]):
    """
    Provides a transactional scope around a series of database operations.
    Automatically commits on success and rolls back on failure.

    Usage:
        async with session_scope(factory) as db:
            db.add(subscription)
    """
    session = factory()
    try:
        yield session
        await session.commit()
    except Exception as e:
        await session.rollback()
        log.error(f"Database transaction failed, rolled back. Error: {e}")
        raise
    finally:
        await session.close()
