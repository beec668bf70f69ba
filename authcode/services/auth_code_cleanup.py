"""Scheduled purge of expired auth codes.

Lookups already sweep expired codes opportunistically. This job covers
deployments where lookups are rare or the sweep is disabled
(``AUTH_CODE_AUTO_DELETE_EXPIRED=false``). Unlike the lookup sweep, a
failure here is reported to the caller.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from authcode.core.clock import Clock, utc_now
from authcode.core.errors import CleanupError
from authcode.repositories.auth_code_repository import AuthCodeRepository

logger = logging.getLogger(__name__)


async def purge_expired_auth_codes(db: AsyncSession, clock: Clock = utc_now) -> int:
    """Delete all expired auth codes and commit.

    Args:
        db: Database session.
        clock: Source of the current time.

    Returns:
        Number of deleted auth codes.

    Raises:
        CleanupError: If the database operation fails.
    """
    repo = AuthCodeRepository(db, auto_delete_expired=False, clock=clock)
    try:
        deleted = await repo.delete_expired()
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Expired auth code purge failed: %s", exc)
        raise CleanupError("Expired auth code purge failed") from exc

    logger.info("Purged %d expired auth codes", deleted)
    return deleted
