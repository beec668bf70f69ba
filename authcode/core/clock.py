"""Time source used across auth code generation and validation.

Components take a ``clock`` callable instead of reading the wall clock so
tests can pin "now" to a fixed instant.
"""

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC.

    Naive values are taken to already be in UTC (this is how SQLite hands
    back stored timestamps).

    Args:
        value: Datetime to normalize.

    Returns:
        The same instant with ``tzinfo=UTC``.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
