"""Repository for AuthCode persistence.

Single-use codes stored in the ``auth_codes`` table. Writes are flushed but
never committed here; the request's session dependency owns the
transaction.
"""

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from authcode.core.clock import Clock, utc_now
from authcode.models.auth_code import AuthCode, AuthCodeType
from authcode.repositories.base import AuthCodeStore

logger = logging.getLogger(__name__)


class AuthCodeRepository(AuthCodeStore):
    """SQLAlchemy-backed auth code store bound to one session."""

    def __init__(
        self,
        db: AsyncSession,
        *,
        auto_delete_expired: bool = True,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the repository.

        Args:
            db: Async database session.
            auto_delete_expired: Purge expired codes before every lookup.
            clock: Source of the current time.
        """
        self._db = db
        self._clock = clock
        self.auto_delete_expired = auto_delete_expired

    async def find_by_code(
        self, code: str, *, for_update: bool = False
    ) -> AuthCode | None:
        code = code.strip()
        if not code:
            return None

        if self.auto_delete_expired:
            await self._sweep_expired()

        stmt = select(AuthCode).where(
            AuthCode.auth_code == code,
            AuthCode.valid_until > self._clock(),
        )
        if for_update:
            # Serializes concurrent consumers on backends with row locks
            stmt = stmt.with_for_update()
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def delete_expired(self) -> int:
        stmt = delete(AuthCode).where(AuthCode.valid_until <= self._clock())
        result = await self._db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        if row_count:
            logger.debug("Deleted %d expired auth codes", row_count)
        return row_count

    async def delete_matching_independent(self, identifier: str, context: str) -> int:
        stmt = delete(AuthCode).where(
            AuthCode.type == AuthCodeType.INDEPENDENT,
            AuthCode.identifier == identifier,
            AuthCode.identifier_context == context,
        )
        result = await self._db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    async def delete_matching_record(
        self,
        table: str,
        uid: int,
        uid_field: str,
        hidden_field: str,
    ) -> int:
        stmt = delete(AuthCode).where(
            AuthCode.type == AuthCodeType.RECORD,
            AuthCode.reference_table == table,
            AuthCode.reference_table_uid == int(uid),
            AuthCode.reference_table_uid_field == uid_field,
            AuthCode.reference_table_hidden_field == hidden_field,
        )
        result = await self._db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    async def insert(self, auth_code: AuthCode) -> None:
        self._db.add(auth_code)
        await self._db.flush()

    async def _sweep_expired(self) -> None:
        """Best-effort expiry purge; a failure never blocks the lookup.

        Runs inside a savepoint so a failed DELETE is rolled back on its own
        and the surrounding transaction stays usable for the lookup.
        """
        try:
            async with self._db.begin_nested():
                await self.delete_expired()
        except SQLAlchemyError as exc:
            # Savepoint was rolled back; session is still usable.
            logger.warning("Expired auth code sweep failed: %s", exc)
