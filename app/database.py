"""
Database connection and session management.
Uses asyncpg with SQLAlchemy async in production, aiosqlite in tests.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncContextManager, Callable, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings

logger = logging.getLogger(__name__)

# Factory returning an async context manager that yields a session
SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]


def get_database_url() -> str:
    """Get database URL without sslmode (asyncpg does not accept it as a query param)."""
    url = settings.database_url
    if not url:
        return ""
    if "?sslmode=" in url:
        url = url.split("?sslmode=")[0]
    elif "&sslmode=" in url:
        url = url.replace("&sslmode=require", "").replace("&sslmode=disable", "")
    return url


def create_engine_if_configured() -> Optional[AsyncEngine]:
    """Create async engine only if DATABASE_URL is configured."""
    db_url = get_database_url()
    if not db_url:
        logger.warning("DATABASE_URL not configured. Database features disabled.")
        return None

    if db_url.startswith("sqlite"):
        return create_async_engine(db_url, echo=settings.debug)

    return create_async_engine(
        db_url,
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


engine = create_engine_if_configured()

async_session_maker = (
    async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    if engine
    else None
)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


def make_session_factory(maker: async_sessionmaker) -> SessionFactory:
    """
    Wrap a sessionmaker into a commit-on-success session scope.

    Stores take one of these instead of a request session so that
    fire-and-forget writes are not tied to the request lifetime.
    """
    @asynccontextmanager
    async def scope() -> AsyncGenerator[AsyncSession, None]:
        async with maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return scope


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Context manager for a database session."""
    if not async_session_maker:
        raise RuntimeError("Database not configured. Set DATABASE_URL environment variable.")

    async with make_session_factory(async_session_maker)() as session:
        yield session


async def init_db() -> None:
    """Initialize database tables."""
    if not engine:
        logger.info("Skipping database initialization - DATABASE_URL not configured")
        return

    # Register models on the metadata
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    if engine:
        await engine.dispose()
