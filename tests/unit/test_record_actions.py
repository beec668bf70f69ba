"""Tests for ConfiguredSchemaLookup and SqlRecordActionExecutor.

Mutations run against the ``pages`` table created in conftest:
uid, title, hidden (default 1), deleted (default 0), tstamp (default 0).
"""

from datetime import timedelta

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from authcode.core.config import TableControl
from authcode.core.errors import ConfigurationError
from authcode.models.auth_code import AuthCode, AuthCodeAction, AuthCodeType
from authcode.services.record_actions import (
    ConfiguredSchemaLookup,
    SqlRecordActionExecutor,
)
from tests.conftest import FROZEN_NOW

_FROZEN_EPOCH = int(FROZEN_NOW.timestamp())


def _record_code(
    action: AuthCodeAction,
    uid: int = 1,
    table: str = "pages",
    uid_field: str = "uid",
) -> AuthCode:
    return AuthCode(
        auth_code="x" * 64,
        type=AuthCodeType.RECORD,
        action=action,
        reference_table=table,
        reference_table_uid=uid,
        reference_table_uid_field=uid_field,
        reference_table_hidden_field="hidden",
        valid_until=FROZEN_NOW + timedelta(days=1),
    )


async def _insert_page(db: AsyncSession, uid: int = 1) -> None:
    await db.execute(
        text("INSERT INTO pages (uid, title) VALUES (:uid, :title)"),
        {"uid": uid, "title": f"Page {uid}"},
    )


async def _page(db: AsyncSession, uid: int = 1):
    result = await db.execute(
        text("SELECT hidden, deleted, tstamp FROM pages WHERE uid = :uid"),
        {"uid": uid},
    )
    return result.one_or_none()


def _executor(db: AsyncSession, clock, **control) -> SqlRecordActionExecutor:
    schema = ConfiguredSchemaLookup({"pages": TableControl(**control)})
    return SqlRecordActionExecutor(db, schema, clock=clock)


# =============================================================================
# Schema lookup
# =============================================================================


class TestConfiguredSchemaLookup:
    """Hidden column resolution from settings."""

    def test_configured_table(self):
        """Configured tables report their disabled column."""
        lookup = ConfiguredSchemaLookup({"pages": TableControl(disabled="hidden")})
        assert lookup.disabled_column_for("pages") == "hidden"

    def test_unknown_table(self):
        """Unconfigured tables report None."""
        assert ConfiguredSchemaLookup({}).disabled_column_for("pages") is None

    def test_blank_disabled_column(self):
        """A blank disabled column counts as not configured."""
        lookup = ConfiguredSchemaLookup({"pages": TableControl(disabled="")})
        assert lookup.disabled_column_for("pages") is None
        assert lookup.control_for("pages") == TableControl(disabled="")


# =============================================================================
# Enable
# =============================================================================


class TestEnable:
    """Unhiding the referenced row."""

    @pytest.mark.asyncio
    async def test_clears_hidden_and_touches_timestamp(
        self, db_session: AsyncSession, clock
    ):
        """hidden becomes 0 and tstamp the current epoch."""
        await _insert_page(db_session)
        executor = _executor(db_session, clock, timestamp="tstamp")

        await executor.enable(_record_code(AuthCodeAction.ENABLE_RECORD), True)

        assert tuple(await _page(db_session)) == (0, 0, _FROZEN_EPOCH)

    @pytest.mark.asyncio
    async def test_timestamp_left_alone_when_disabled(
        self, db_session: AsyncSession, clock
    ):
        """touch_timestamp=False only clears hidden."""
        await _insert_page(db_session)
        executor = _executor(db_session, clock, timestamp="tstamp")

        await executor.enable(_record_code(AuthCodeAction.ENABLE_RECORD), False)

        assert tuple(await _page(db_session)) == (0, 0, 0)

    @pytest.mark.asyncio
    async def test_only_referenced_row_changes(self, db_session: AsyncSession, clock):
        """Other rows keep their hidden flag."""
        await _insert_page(db_session, 1)
        await _insert_page(db_session, 2)
        executor = _executor(db_session, clock)

        await executor.enable(_record_code(AuthCodeAction.ENABLE_RECORD, uid=2), True)

        assert (await _page(db_session, 1)).hidden == 1
        assert (await _page(db_session, 2)).hidden == 0

    @pytest.mark.asyncio
    async def test_missing_row_is_not_an_error(
        self, db_session: AsyncSession, clock, caplog
    ):
        """A vanished row is logged, not raised."""
        executor = _executor(db_session, clock)

        await executor.enable(_record_code(AuthCodeAction.ENABLE_RECORD, uid=99), True)

        assert "No row pages.uid=99" in caplog.text

    @pytest.mark.asyncio
    async def test_rejects_unsafe_identifiers(self, db_session: AsyncSession, clock):
        """Table and column names must be plain identifiers."""
        executor = _executor(db_session, clock)
        auth_code = _record_code(
            AuthCodeAction.ENABLE_RECORD, table="pages; DROP TABLE pages"
        )

        with pytest.raises(ConfigurationError, match="Invalid table name"):
            await executor.enable(auth_code, True)


# =============================================================================
# Delete
# =============================================================================


class TestDelete:
    """Removing the referenced row."""

    @pytest.mark.asyncio
    async def test_soft_delete(self, db_session: AsyncSession, clock):
        """With a deleted column the row is flagged, not removed."""
        await _insert_page(db_session)
        executor = _executor(
            db_session, clock, deleted="deleted", timestamp="tstamp"
        )

        await executor.delete(_record_code(AuthCodeAction.DELETE_RECORD), False)

        assert tuple(await _page(db_session)) == (1, 1, _FROZEN_EPOCH)

    @pytest.mark.asyncio
    async def test_force_hard_deletes(self, db_session: AsyncSession, clock):
        """force removes the row even with a deleted column."""
        await _insert_page(db_session)
        executor = _executor(db_session, clock, deleted="deleted")

        await executor.delete(_record_code(AuthCodeAction.DELETE_RECORD), True)

        assert await _page(db_session) is None

    @pytest.mark.asyncio
    async def test_hard_delete_without_deleted_column(
        self, db_session: AsyncSession, clock
    ):
        """Tables without soft-delete support lose the row."""
        await _insert_page(db_session)
        executor = _executor(db_session, clock)

        await executor.delete(_record_code(AuthCodeAction.DELETE_RECORD), False)

        assert await _page(db_session) is None

    @pytest.mark.asyncio
    async def test_hard_delete_for_unconfigured_table(
        self, db_session: AsyncSession, clock
    ):
        """Unconfigured tables are hard deleted."""
        await _insert_page(db_session)
        executor = SqlRecordActionExecutor(
            db_session, ConfiguredSchemaLookup({}), clock=clock
        )

        await executor.delete(_record_code(AuthCodeAction.DELETE_RECORD), False)

        assert await _page(db_session) is None
