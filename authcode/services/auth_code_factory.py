"""Auth code generation.

Creates independent and record auth codes, making sure at most one live
code exists per identity: every older code for the same identifier/context
or the same referenced row is deleted before the new one is inserted.
"""

import hashlib
import json
import logging
import secrets
from datetime import datetime

from authcode.core.clock import Clock, utc_now
from authcode.core.config import DEFAULT_EXPIRY_TIME
from authcode.core.errors import ConfigurationError, InvalidExpiryError
from authcode.core.relative_time import parse_relative_time
from authcode.models.auth_code import (
    DEFAULT_UID_FIELD,
    AuthCode,
    AuthCodeAction,
    AuthCodeType,
)
from authcode.repositories.base import AuthCodeStore
from authcode.services.collaborators import SchemaLookup

logger = logging.getLogger(__name__)

# Bytes of randomness mixed into every code
_RANDOM_BYTES = 16


class AuthCodeFactory:
    """Generates auth codes and stores them through an AuthCodeStore."""

    def __init__(
        self,
        store: AuthCodeStore,
        schema_lookup: SchemaLookup | None = None,
        *,
        expiry_time: str = DEFAULT_EXPIRY_TIME,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the factory.

        Args:
            store: Where generated codes are persisted.
            schema_lookup: Resolves hidden columns for record codes when no
                explicit hidden field is passed.
            expiry_time: Relative time expression for ``valid_until``.
            clock: Source of the current time.

        Raises:
            InvalidExpiryError: If ``expiry_time`` is unusable.
        """
        self._store = store
        self._schema_lookup = schema_lookup
        self._clock = clock
        self.set_expiry_time(expiry_time)

    @property
    def expiry_time(self) -> str:
        """The relative expiry expression in effect."""
        return self._expiry_time

    def set_expiry_time(self, expression: str) -> None:
        """Replace the expiry expression.

        Args:
            expression: Relative time expression, e.g. ``"+2 hours"``.

        Raises:
            InvalidExpiryError: If it does not parse or is not in the future.
        """
        self._resolve_expiry(expression)
        self._expiry_time = expression

    def get_valid_until(self) -> datetime:
        """Return the instant until which a code generated now stays valid.

        Raises:
            InvalidExpiryError: If the expression no longer resolves to the future.
        """
        return self._resolve_expiry(self._expiry_time)

    async def new_independent(self, identifier: str, context: str) -> AuthCode:
        """Generate a code scoped by an identifier within a context.

        Args:
            identifier: Identifier, unique within ``context``.
            context: Name of the identifier's namespace (e.g., a form name).

        Returns:
            The stored AuthCode.
        """
        auth_code = AuthCode(
            type=AuthCodeType.INDEPENDENT,
            # Not used for independent codes; stored as a valid placeholder
            action=AuthCodeAction.ACCESS_PAGE,
            identifier=identifier,
            identifier_context=context,
            reference_table="",
            reference_table_uid=0,
            reference_table_uid_field=DEFAULT_UID_FIELD,
            reference_table_hidden_field="",
        )
        return await self._initialize_and_store(auth_code)

    async def new_record(
        self,
        table: str,
        uid: int,
        action: AuthCodeAction | str,
        hidden_field: str | None = None,
        *,
        uid_field: str = DEFAULT_UID_FIELD,
    ) -> AuthCode:
        """Generate a code that acts on one row of a table.

        Args:
            table: Name of the referenced table.
            uid: Value of the row's uid column.
            action: What consuming the code does to the row.
            hidden_field: Column marking the row as hidden. Looked up through
                the schema lookup when empty.
            uid_field: Name of the uid column.

        Returns:
            The stored AuthCode.

        Raises:
            ConfigurationError: If no hidden field is given or configured.
            ValueError: If ``action`` is not a known AuthCodeAction.
        """
        resolved_hidden_field = (hidden_field or "").strip()
        if not resolved_hidden_field and self._schema_lookup is not None:
            resolved_hidden_field = (
                self._schema_lookup.disabled_column_for(table) or ""
            ).strip()
        if not resolved_hidden_field:
            raise ConfigurationError(
                f"Hidden field is not set for table {table!r} and can not be "
                "found in the schema configuration."
            )

        auth_code = AuthCode(
            type=AuthCodeType.RECORD,
            action=AuthCodeAction(action),
            identifier="",
            identifier_context="",
            reference_table=table,
            reference_table_uid=int(uid),
            reference_table_uid_field=uid_field,
            reference_table_hidden_field=resolved_hidden_field,
        )
        return await self._initialize_and_store(auth_code)

    async def _initialize_and_store(self, auth_code: AuthCode) -> AuthCode:
        auth_code.valid_until = self.get_valid_until()
        auth_code.auth_code = self._generate_code(auth_code)

        await self._store.clear_associated(auth_code)
        await self._store.insert(auth_code)

        logger.info(
            "Generated %s auth code for %s valid until %s",
            auth_code.type.value,
            auth_code.identity()[1:],
            auth_code.valid_until.isoformat(),
        )
        return auth_code

    def _resolve_expiry(self, expression: str) -> datetime:
        now = self._clock()
        valid_until = parse_relative_time(expression, now)
        if valid_until <= now:
            raise InvalidExpiryError(
                expression, "The auth code expiry time must be in the future"
            )
        return valid_until

    @staticmethod
    def _generate_code(auth_code: AuthCode) -> str:
        """Hash the code's own state together with a random part.

        Unguessability comes from the random part; the digest only turns it
        into a fixed-length opaque string.
        """
        random_part = secrets.token_hex(_RANDOM_BYTES)
        state = json.dumps(auth_code.to_dict(), sort_keys=True)
        return hashlib.sha256((state + random_part).encode()).hexdigest()
