"""
Database Infrastructure
=======================

Manages the client-local store: engine configuration, session lifecycle
and table creation.

Uses SQLAlchemy 2.0 with aiosqlite. The whole working set lives in one
SQLite file, the way the portal keeps its blobs in browser local storage.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

from sqlalchemy import DateTime
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator

from jobwatch.config import settings


class Base(DeclarativeBase):
    """Declarative base for the jobs, reminders, notifications and timeline tables."""
    pass


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime column.

    SQLite drops tzinfo, so values are stored as naive UTC and handed back
    as aware UTC datetimes.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


# Global engine and session maker
_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for a SQLite URL.

    In-memory databases share one connection so every session sees the
    same data.
    """
    if ":memory:" in database_url:
        return create_async_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(database_url, echo=echo)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by the ticker and the HTTP layer."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_engine() -> AsyncEngine:
    """
    Get the database engine.

    Raises:
        RuntimeError: init_database() has not run
    """
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call init_database() first.")
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Get the global session factory."""
    if _session_maker is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _session_maker


def init_database(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Build the process-wide engine and session factory.

    Called once from the application lifespan.

    Returns:
        AsyncEngine: The initialized engine
    """
    global _engine, _session_maker

    _engine = build_engine(database_url or settings.database_url, echo=settings.debug)
    _session_maker = build_session_maker(_engine)
    return _engine


async def close_database() -> None:
    """Dispose of the process-wide engine."""
    global _engine, _session_maker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_maker = None


@asynccontextmanager
async def session_scope(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Async context manager for one unit of work.

    Everything written inside the block is committed together, or rolled
    back together when the block raises.

    Usage:
        async with session_scope(session_maker) as session:
            session.add(model)
    """
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_tables(engine: Optional[AsyncEngine] = None) -> None:
    """
    Create all database tables.

    Imports every model module so the metadata is complete.
    """
    import jobwatch.sla.infrastructure.models  # noqa: F401
    import jobwatch.reminders.infrastructure.models  # noqa: F401
    import jobwatch.notifications.infrastructure.models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
