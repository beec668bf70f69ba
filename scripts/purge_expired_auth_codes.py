"""Purge expired auth codes.

Standalone script meant for cron / scheduled jobs.

Usage:
    python -m scripts.purge_expired_auth_codes
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from authcode.services.auth_code_cleanup import purge_expired_auth_codes

logger = structlog.get_logger()


async def run_purge(session: AsyncSession) -> int:
    """Purge expired codes through the given session.

    Args:
        session: Database session.

    Returns:
        Number of deleted auth codes.
    """
    deleted = await purge_expired_auth_codes(session)
    logger.info("purge_complete", deleted=deleted)
    return deleted


async def main() -> None:
    """CLI entry point: purge against the configured database."""
    import sys

    from sqlalchemy.ext.asyncio import async_sessionmaker

    from authcode.core.config import settings
    from authcode.core.database import build_engine
    from authcode.core.logging import configure_logging

    configure_logging(settings.log_level)

    engine = build_engine(echo=False)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as session:
        await run_purge(session)

    await engine.dispose()
    sys.exit(0)


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
