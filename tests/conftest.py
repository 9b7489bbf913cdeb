from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from jobwatch.config import Settings
from jobwatch.engine import EngineQueue
from jobwatch.shared.infrastructure.database import (
    build_engine,
    build_session_maker,
    create_tables,
)

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
MEMORY_URL = "sqlite+aiosqlite:///:memory:"


class FakeClock:
    """Injectable clock that only moves when told to."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


@pytest.fixture
def t0() -> datetime:
    return T0


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = build_engine(MEMORY_URL)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_maker(db_engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def queue(session_factory: async_sessionmaker[AsyncSession]) -> EngineQueue:
    return EngineQueue(session_factory)


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        environment="test",
        log_level="WARNING",
        database_url=MEMORY_URL,
        sla_config_path=tmp_path / "sla_config.yaml",
        slack_webhook_url=None,
    )


@pytest.fixture
async def client(test_settings: Settings, clock: FakeClock) -> AsyncGenerator[AsyncClient, None]:
    from jobwatch.main import create_app

    app = create_app(test_settings, clock=clock, run_scheduler=False)
    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
