"""In-memory auth code store.

Keeps codes in a dict for the lifetime of the process. Suitable for tests
and single-process deployments; safe for async/await usage on one event
loop but not for multi-threaded access. Use AuthCodeRepository when codes
must survive restarts or be shared between workers.
"""

from authcode.core.clock import Clock, utc_now
from authcode.models.auth_code import AuthCode
from authcode.repositories.base import AuthCodeStore


class InMemoryAuthCodeStore(AuthCodeStore):
    """Dict-backed auth code store keyed by the code string."""

    def __init__(
        self,
        *,
        auto_delete_expired: bool = True,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the store.

        Args:
            auto_delete_expired: Purge expired codes before every lookup.
            clock: Source of the current time.
        """
        self._store: dict[str, AuthCode] = {}
        self._clock = clock
        self.auto_delete_expired = auto_delete_expired

    async def find_by_code(
        self, code: str, *, for_update: bool = False
    ) -> AuthCode | None:
        code = code.strip()
        if not code:
            return None

        if self.auto_delete_expired:
            await self.delete_expired()

        auth_code = self._store.get(code)
        if auth_code is None or auth_code.is_expired(self._clock()):
            return None
        return auth_code

    async def delete_expired(self) -> int:
        now = self._clock()
        expired = [code for code, data in self._store.items() if data.is_expired(now)]
        for code in expired:
            del self._store[code]
        return len(expired)

    async def delete_matching_independent(self, identifier: str, context: str) -> int:
        return self._delete_where(
            lambda ac: not ac.is_record
            and ac.identifier == identifier
            and ac.identifier_context == context
        )

    async def delete_matching_record(
        self,
        table: str,
        uid: int,
        uid_field: str,
        hidden_field: str,
    ) -> int:
        return self._delete_where(
            lambda ac: ac.is_record
            and ac.reference_table == table
            and ac.reference_table_uid == int(uid)
            and ac.reference_table_uid_field == uid_field
            and ac.reference_table_hidden_field == hidden_field
        )

    async def insert(self, auth_code: AuthCode) -> None:
        self._store[auth_code.auth_code] = auth_code

    def __len__(self) -> int:
        return len(self._store)

    def clear(self) -> None:
        """Remove all codes regardless of expiry."""
        self._store.clear()

    def _delete_where(self, predicate) -> int:
        matching = [code for code, data in self._store.items() if predicate(data)]
        for code in matching:
            del self._store[code]
        return len(matching)
