"""Abstract auth code store.

Both the SQLAlchemy repository and the in-memory store implement this
interface, so generation and validation never depend on where codes live.
"""

from abc import ABC, abstractmethod

from authcode.models.auth_code import AuthCode


class AuthCodeStore(ABC):
    """Persistence operations the auth code lifecycle needs."""

    @abstractmethod
    async def find_by_code(
        self, code: str, *, for_update: bool = False
    ) -> AuthCode | None:
        """Look up a non-expired auth code.

        Expired codes are purged first unless that is disabled. Expired codes
        are never returned, purge or not.

        Args:
            code: The submitted auth code.
            for_update: Lock the row until the surrounding transaction ends,
                where the backend supports it.

        Returns:
            The matching AuthCode, or None.
        """
        ...

    @abstractmethod
    async def delete_expired(self) -> int:
        """Delete every auth code whose validity has ended.

        Returns:
            Number of deleted codes.
        """
        ...

    @abstractmethod
    async def delete_matching_independent(self, identifier: str, context: str) -> int:
        """Delete all independent codes for an identifier in a context.

        Returns:
            Number of deleted codes.
        """
        ...

    @abstractmethod
    async def delete_matching_record(
        self,
        table: str,
        uid: int,
        uid_field: str,
        hidden_field: str,
    ) -> int:
        """Delete all record codes referencing exactly this row and hidden field.

        Returns:
            Number of deleted codes.
        """
        ...

    @abstractmethod
    async def insert(self, auth_code: AuthCode) -> None:
        """Persist a new auth code."""
        ...

    async def clear_associated(self, auth_code: AuthCode) -> int:
        """Delete every code sharing the identity of ``auth_code``.

        Args:
            auth_code: Code whose identity selects the codes to delete.
                The code itself is deleted too.

        Returns:
            Number of deleted codes.
        """
        if auth_code.is_record:
            return await self.delete_matching_record(
                auth_code.reference_table,
                auth_code.reference_table_uid,
                auth_code.reference_table_uid_field,
                auth_code.reference_table_hidden_field,
            )
        return await self.delete_matching_independent(
            auth_code.identifier,
            auth_code.identifier_context,
        )
