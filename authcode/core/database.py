"""Async database engine and session management.

Auth codes, and the rows record codes act on, are read and written through
one request-scoped session. It commits when the request finishes and rolls
back if anything raised, so a failed record mutation never leaves an auth
code half-consumed.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from authcode.core.config import settings


def build_engine(url: str | None = None, *, echo: bool | None = None) -> AsyncEngine:
    """Create an async engine for the auth code database.

    Args:
        url: Database URL. Defaults to ``settings.database_url``.
        echo: Log SQL statements. Defaults to on in development.

    Returns:
        A new AsyncEngine. Callers that create one own its disposal.
    """
    if echo is None:
        echo = settings.environment == "development"
    return create_async_engine(
        url or settings.database_url,
        echo=echo,
        pool_pre_ping=True,
    )


engine = build_engine()

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a database session."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
