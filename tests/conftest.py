from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from authcode.models.base import Base
from authcode.repositories.auth_code_repository import AuthCodeRepository
from authcode.repositories.in_memory import InMemoryAuthCodeStore

# In-memory SQLite; StaticPool keeps one connection so the schema survives
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed "now" shared by all time-dependent tests
FROZEN_NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)

# Record table the default executor acts on in tests
_CREATE_PAGES_TABLE = """
    CREATE TABLE pages (
        uid INTEGER PRIMARY KEY,
        title TEXT NOT NULL,
        hidden INTEGER NOT NULL DEFAULT 1,
        deleted INTEGER NOT NULL DEFAULT 0,
        tstamp INTEGER NOT NULL DEFAULT 0
    )
"""


class FrozenClock:
    """Callable clock returning a controllable instant."""

    def __init__(self, now: datetime = FROZEN_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        """Move time forward by a timedelta built from ``kwargs``."""
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    """Clock pinned to FROZEN_NOW."""
    return FrozenClock()


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine with all tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest inside it
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.execute(text(_CREATE_PAGES_TABLE))

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.execute(text("DROP TABLE pages"))

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def repository(db_session: AsyncSession, clock: FrozenClock) -> AuthCodeRepository:
    """SQLAlchemy auth code store on the test session."""
    return AuthCodeRepository(db_session, clock=clock)


@pytest.fixture
def memory_store(clock: FrozenClock) -> InMemoryAuthCodeStore:
    """Fresh in-memory auth code store."""
    return InMemoryAuthCodeStore(clock=clock)
