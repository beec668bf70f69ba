"""Auth code model - single-use bearer codes.

An auth code either stands alone, scoped by an identifier within a
context (independent), or points at one row of one table together with the
action to perform on that row (record).
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, Index, Integer, String, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from authcode.core.clock import ensure_utc
from authcode.models.base import Base

DEFAULT_UID_FIELD = "uid"


class AuthCodeType(str, Enum):
    """What an auth code is scoped by."""

    INDEPENDENT = "independent"
    RECORD = "record"


class AuthCodeAction(str, Enum):
    """What consuming a record auth code does to the referenced row.

    ACCESS_PAGE doubles as the placeholder for independent codes.
    """

    ENABLE_RECORD = "enable_record"
    DELETE_RECORD = "delete_record"
    ACCESS_PAGE = "access_page"


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class AuthCode(Base):
    """Single-use auth code.

    Looked up by ``auth_code`` and deleted after use, together with every
    other code sharing its identity (see ``identity()``).

    Attributes:
        id: Surrogate primary key.
        auth_code: The opaque bearer secret.
        type: Independent or record.
        action: Action performed on the referenced record.
        identifier: Independent codes only. Unique within the context.
        identifier_context: Independent codes only.
        reference_table: Record codes only. Table of the referenced row.
        reference_table_uid: Record codes only. Value of the uid column.
        reference_table_uid_field: Record codes only. Name of the uid column.
        reference_table_hidden_field: Record codes only. Column marking the
            row as hidden.
        valid_until: The code is expired from this instant on.
    """

    __tablename__ = "auth_codes"
    __table_args__ = (
        UniqueConstraint("auth_code", name="uq_auth_codes_auth_code"),
        CheckConstraint(
            "type IN ('independent', 'record')",
            name="ck_auth_codes_type",
        ),
        CheckConstraint(
            "action IN ('enable_record', 'delete_record', 'access_page')",
            name="ck_auth_codes_action",
        ),
        CheckConstraint(
            "type = 'record' OR action = 'access_page'",
            name="ck_auth_codes_independent_action",
        ),
        Index("ix_auth_codes_valid_until", "valid_until"),
        Index(
            "ix_auth_codes_independent",
            "type",
            "identifier",
            "identifier_context",
        ),
        Index(
            "ix_auth_codes_record",
            "type",
            "reference_table",
            "reference_table_uid",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    auth_code: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    type: Mapped[AuthCodeType] = mapped_column(
        SAEnum(
            AuthCodeType,
            native_enum=False,
            length=16,
            values_callable=_enum_values,
        ),
        nullable=False,
    )
    action: Mapped[AuthCodeAction] = mapped_column(
        SAEnum(
            AuthCodeAction,
            native_enum=False,
            length=32,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=AuthCodeAction.ACCESS_PAGE,
    )
    identifier: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
    )
    identifier_context: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
    )
    reference_table: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
    )
    reference_table_uid: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    reference_table_uid_field: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default=DEFAULT_UID_FIELD,
    )
    reference_table_hidden_field: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
    )
    valid_until: Mapped[datetime] = mapped_column(nullable=False)

    @property
    def is_record(self) -> bool:
        """True if this code acts on a referenced row."""
        return self.type == AuthCodeType.RECORD

    def is_expired(self, now: datetime) -> bool:
        """Check whether the code is past its validity window.

        Args:
            now: Current time.

        Returns:
            True once ``now`` reaches ``valid_until``.
        """
        return ensure_utc(now) >= ensure_utc(self.valid_until)

    def identity(self) -> tuple:
        """Return the tuple that scopes codes "associated" with this one.

        Returns:
            ``(type, identifier, identifier_context)`` for independent codes,
            ``(type, table, uid, uid_field, hidden_field)`` for record codes.
        """
        if self.is_record:
            return (
                self.type,
                self.reference_table,
                self.reference_table_uid,
                self.reference_table_uid_field,
                self.reference_table_hidden_field,
            )
        return (self.type, self.identifier, self.identifier_context)

    def to_dict(self) -> dict[str, str | int]:
        """Serialize the code's state (without the code itself)."""
        return {
            "type": AuthCodeType(self.type).value,
            "action": AuthCodeAction(self.action).value,
            "identifier": self.identifier,
            "identifier_context": self.identifier_context,
            "reference_table": self.reference_table,
            "reference_table_uid": self.reference_table_uid,
            "reference_table_uid_field": self.reference_table_uid_field,
            "reference_table_hidden_field": self.reference_table_hidden_field,
            "valid_until": ensure_utc(self.valid_until).isoformat(),
        }

    def __repr__(self) -> str:
        return f"<AuthCode id={self.id} type={self.type} action={self.action}>"
