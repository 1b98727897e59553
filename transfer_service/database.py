"""
Archives Transfer Service — Database Session Management
=========================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   `Database` wraps an async engine with connection pooling and a
       session factory. One instance is built by the application factory
       and lives inside the ServiceContext; the session dependency pulls it
       from `request.app.state`.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Engine is created with the app (no connection is opened until the
       first query); sessions are created per-request.

The service only reads from the store (genres, versions). Schema
management is owned by whoever provisions the MySQL database.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from transfer_service.config import Settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


def build_engine(settings: Settings) -> AsyncEngine:
    """
    Create the async engine for the configured store.

    Pool sizing is only passed for server databases; SQLite (used in tests)
    manages its own pool and rejects those arguments.
    """
    kwargs = {
        # Echo SQL queries in DEBUG mode for development visibility
        "echo": settings.log_level == "DEBUG",
    }
    if not settings.is_sqlite:
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,  # MySQL drops idle connections after wait_timeout
        )
    return create_async_engine(settings.sqlalchemy_url, **kwargs)


class Database:
    """
    Owns the engine and session factory for one application instance.

    expire_on_commit=False keeps ORM attributes readable after the session
    closes, which the read-only handlers rely on when serializing rows.
    """

    def __init__(self, settings: Settings):
        self.url = settings.sqlalchemy_url
        self.engine = build_engine(settings)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @property
    def host(self) -> str:
        return self.url.host or self.url.database or ""

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Provide a session that commits on success, rolls back on error,
        and is always closed.

        Raises:
            Any database exception is propagated to the caller.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def dispose(self) -> None:
        """Close every pooled connection (application shutdown)."""
        await self.engine.dispose()


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Example usage in a route:
        @router.get("/genres")
        async def list_genres(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    database: Database = request.app.state.context.database
    async with database.session() as session:
        yield session
