"""Async engine and session lifecycle for the post store."""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from .config import settings


def _engine_options() -> dict:
    """PostgreSQL gets a sized pool; aiosqlite brings its own."""
    options = {"echo": settings.database_echo}
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=10,
            pool_pre_ping=True,  # Verify connections before using
        )
    return options


# Create async engine
engine = create_async_engine(settings.database_url, **_engine_options())

# Create async session factory; detached indexing tasks keep using loaded posts after commit
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

# Base class for all ORM models
Base = declarative_base()


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Session scope for scripts and background indexing.

    Commits on clean exit and rolls back if the block raises.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session dependency."""
    async with get_db_context() as session:
        yield session


async def init_db():
    """Create tables; deployments on PostgreSQL also run scripts/create_similarity_function.py."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    await engine.dispose()
