"""
Database Session Management

Provides the async SQLAlchemy engine and session factory for the passage
store. SQLite (aiosqlite) is the default backend; PostgreSQL (asyncpg) works
through the same code path.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)

from ..config import settings
from .models import Base

logger = logging.getLogger("aoi.db")


# Create async engine
async_engine = create_async_engine(
    settings.database_url,
    echo=False,  # Set True for SQL debugging
    pool_pre_ping=True,
)

# Session factory
AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


def _ensure_sqlite_directory(database_url: str) -> None:
    url = make_url(database_url)
    if not url.get_backend_name().startswith("sqlite"):
        return

    database = url.database
    if not database or database == ":memory:":
        return

    Path(database).parent.mkdir(parents=True, exist_ok=True)


async def init_db(engine: AsyncEngine = async_engine) -> None:
    """
    Create the passage table if it does not exist yet.

    For file-backed SQLite databases the parent directory is created first.
    """
    _ensure_sqlite_directory(str(engine.url))

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Passage store ready (%s)", engine.url.get_backend_name())


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for FastAPI endpoints that need database access.

    Usage:
        @router.get("/items")
        async def get_items(session: AsyncSession = Depends(get_async_session)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
