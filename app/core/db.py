"""Database engine and session management for the location directory."""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings

# Lazy database initialization - don't create engine at import time
engine: AsyncEngine | None = None
async_session_factory: async_sessionmaker[AsyncSession] | None = None


class DatabaseNotInitializedError(RuntimeError):
    """Raised when a session is requested before the engine exists."""


def _async_database_url(database_url: str) -> str:
    """Rewrite a PostgreSQL URL to use the asyncpg driver."""
    for prefix in ("postgresql+psycopg2://", "postgresql://", "postgres://"):
        if database_url.startswith(prefix):
            return database_url.replace(prefix, "postgresql+asyncpg://", 1)
    return database_url


def _initialize_database() -> None:
    """Initialize database engine and session factory."""
    global engine, async_session_factory

    if engine is not None:
        return

    if os.getenv("TESTING") == "true":
        # Tests inject an in-memory directory instead
        return

    engine = create_async_engine(
        _async_database_url(settings.DATABASE_URL),
        pool_size=settings.MAX_CONNECTIONS,
        max_overflow=0,
        pool_pre_ping=True,
        echo=False,
    )
    async_session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Open a database session for the duration of the block.

    Raises:
        DatabaseNotInitializedError: If no engine could be created
    """
    _initialize_database()

    if async_session_factory is None:
        raise DatabaseNotInitializedError(
            "Database not initialized - cannot create session"
        )

    async with async_session_factory() as session:
        yield session


async def dispose_engine() -> None:
    """Close all pooled connections."""
    global engine, async_session_factory

    if engine is not None:
        await engine.dispose()
    engine = None
    async_session_factory = None
