"""Default record mutations for consumed record auth codes.

ConfiguredSchemaLookup answers "which column hides rows of this table" from
settings; SqlRecordActionExecutor enables or deletes the referenced row with
plain SQL against the same database session the codes live in.
"""

import logging
import re
from collections.abc import Mapping

from sqlalchemy import column, delete, table, update
from sqlalchemy.ext.asyncio import AsyncSession

from authcode.core.clock import Clock, utc_now
from authcode.core.config import TableControl
from authcode.core.errors import ConfigurationError
from authcode.models.auth_code import AuthCode

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_identifier(name: str, what: str) -> str:
    if not _IDENTIFIER_RE.match(name):
        raise ConfigurationError(f"Invalid {what} name for record auth code: {name!r}")
    return name


class ConfiguredSchemaLookup:
    """SchemaLookup backed by the ``record_tables`` setting."""

    def __init__(self, tables: Mapping[str, TableControl]) -> None:
        self._tables = dict(tables)

    def control_for(self, table_name: str) -> TableControl | None:
        """Return all control columns configured for a table."""
        return self._tables.get(table_name)

    def disabled_column_for(self, table_name: str) -> str | None:
        control = self._tables.get(table_name)
        if control is None or not control.disabled:
            return None
        return control.disabled


class SqlRecordActionExecutor:
    """ActionExecutor issuing UPDATE/DELETE statements on the referenced table."""

    def __init__(
        self,
        db: AsyncSession,
        schema: ConfiguredSchemaLookup,
        *,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the executor.

        Args:
            db: Async database session (shared with the auth code store).
            schema: Control column lookup for referenced tables.
            clock: Source of the current time for timestamp columns.
        """
        self._db = db
        self._schema = schema
        self._clock = clock

    async def enable(self, auth_code: AuthCode, touch_timestamp: bool) -> None:
        """Unhide the referenced row.

        Args:
            auth_code: Record auth code pointing at the row.
            touch_timestamp: Also set the table's timestamp column, if any.
        """
        table_name = _check_identifier(auth_code.reference_table, "table")
        uid_field = _check_identifier(auth_code.reference_table_uid_field, "uid column")
        hidden_field = _check_identifier(
            auth_code.reference_table_hidden_field, "hidden column"
        )

        values: dict[str, int] = {hidden_field: 0}
        control = self._schema.control_for(table_name)
        if touch_timestamp and control is not None and control.timestamp:
            values[_check_identifier(control.timestamp, "timestamp column")] = int(
                self._clock().timestamp()
            )

        target = table(table_name, *(column(name) for name in (uid_field, *values)))
        stmt = (
            update(target)
            .where(target.c[uid_field] == auth_code.reference_table_uid)
            .values(values)
        )
        result = await self._db.execute(stmt)
        self._log_outcome("Enabled", auth_code, result.rowcount)  # type: ignore[attr-defined]

    async def delete(self, auth_code: AuthCode, force: bool) -> None:
        """Remove the referenced row.

        The row is hard deleted when ``force`` is set or the table has no
        soft-delete column; otherwise the soft-delete column is set to 1.

        Args:
            auth_code: Record auth code pointing at the row.
            force: Always hard delete.
        """
        table_name = _check_identifier(auth_code.reference_table, "table")
        uid_field = _check_identifier(auth_code.reference_table_uid_field, "uid column")
        control = self._schema.control_for(table_name)

        if force or control is None or not control.deleted:
            target = table(table_name, column(uid_field))
            stmt = delete(target).where(
                target.c[uid_field] == auth_code.reference_table_uid
            )
            result = await self._db.execute(stmt)
            self._log_outcome("Deleted", auth_code, result.rowcount)  # type: ignore[attr-defined]
            return

        values: dict[str, int] = {_check_identifier(control.deleted, "deleted column"): 1}
        if control.timestamp:
            values[_check_identifier(control.timestamp, "timestamp column")] = int(
                self._clock().timestamp()
            )
        target = table(table_name, *(column(name) for name in (uid_field, *values)))
        stmt = (
            update(target)
            .where(target.c[uid_field] == auth_code.reference_table_uid)
            .values(values)
        )
        result = await self._db.execute(stmt)
        self._log_outcome("Soft-deleted", auth_code, result.rowcount)  # type: ignore[attr-defined]

    @staticmethod
    def _log_outcome(verb: str, auth_code: AuthCode, row_count: int) -> None:
        if row_count:
            logger.info(
                "%s %s.%s=%s via auth code",
                verb,
                auth_code.reference_table,
                auth_code.reference_table_uid_field,
                auth_code.reference_table_uid,
            )
        else:
            logger.warning(
                "No row %s.%s=%s found for auth code action",
                auth_code.reference_table,
                auth_code.reference_table_uid_field,
                auth_code.reference_table_uid,
            )
