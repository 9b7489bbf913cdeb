"""
Engine Queue
============

Serializes engine ticks with external writes on the single event loop.

A tick and a write never interleave: whoever holds the lock runs its whole
unit of work, commit included, before the next one starts. Readers open a
plain session and only ever see committed state.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jobwatch.shared.infrastructure.database import session_scope


class EngineQueue:
    """One asyncio.Lock in front of the session factory."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """Exclusive unit of work; commits on exit, rolls back on error."""
        async with self._lock:
            async with session_scope(self._session_maker) as session:
                yield session

    @asynccontextmanager
    async def read(self) -> AsyncGenerator[AsyncSession, None]:
        async with self._session_maker() as session:
            yield session

    async def drain(self) -> None:
        """Wait for the unit of work in progress, if any."""
        async with self._lock:
            pass

    @property
    def busy(self) -> bool:
        return self._lock.locked()
