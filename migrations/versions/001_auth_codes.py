"""Create auth_codes table.

Revision ID: 001_auth_codes
Revises:
Create Date: 2026-10-19

Single-use auth codes: unique code, type/action, independent identity
(identifier, identifier_context) or record reference (table, uid, uid
field, hidden field), and expiry.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_auth_codes"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "auth_codes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("auth_code", sa.String(64), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column(
            "action",
            sa.String(32),
            nullable=False,
            server_default="access_page",
        ),
        sa.Column("identifier", sa.String(255), nullable=False, server_default=""),
        sa.Column(
            "identifier_context", sa.String(255), nullable=False, server_default=""
        ),
        sa.Column(
            "reference_table", sa.String(255), nullable=False, server_default=""
        ),
        sa.Column(
            "reference_table_uid", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column(
            "reference_table_uid_field",
            sa.String(255),
            nullable=False,
            server_default="uid",
        ),
        sa.Column(
            "reference_table_hidden_field",
            sa.String(255),
            nullable=False,
            server_default="",
        ),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("auth_code", name="uq_auth_codes_auth_code"),
        sa.CheckConstraint(
            "type IN ('independent', 'record')",
            name="ck_auth_codes_type",
        ),
        sa.CheckConstraint(
            "action IN ('enable_record', 'delete_record', 'access_page')",
            name="ck_auth_codes_action",
        ),
        sa.CheckConstraint(
            "type = 'record' OR action = 'access_page'",
            name="ck_auth_codes_independent_action",
        ),
    )
    op.create_index("ix_auth_codes_valid_until", "auth_codes", ["valid_until"])
    op.create_index(
        "ix_auth_codes_independent",
        "auth_codes",
        ["type", "identifier", "identifier_context"],
    )
    op.create_index(
        "ix_auth_codes_record",
        "auth_codes",
        ["type", "reference_table", "reference_table_uid"],
    )


def downgrade() -> None:
    op.drop_index("ix_auth_codes_record", table_name="auth_codes")
    op.drop_index("ix_auth_codes_independent", table_name="auth_codes")
    op.drop_index("ix_auth_codes_valid_until", table_name="auth_codes")
    op.drop_table("auth_codes")
