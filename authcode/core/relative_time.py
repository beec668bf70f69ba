"""Relative time expressions for auth code expiry.

Expiry is configured as a short English expression resolved against the
current time, e.g. ``"+1 day"``, ``"+ 2 hours 30 minutes"`` or
``"tomorrow +6 hours"``. Months and years use calendar arithmetic.
"""

import re
from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta

from authcode.core.errors import InvalidExpiryError

# unit spelling -> (relativedelta keyword, multiplier)
_UNITS: dict[str, tuple[str, int]] = {
    "sec": ("seconds", 1),
    "secs": ("seconds", 1),
    "second": ("seconds", 1),
    "seconds": ("seconds", 1),
    "min": ("minutes", 1),
    "mins": ("minutes", 1),
    "minute": ("minutes", 1),
    "minutes": ("minutes", 1),
    "hour": ("hours", 1),
    "hours": ("hours", 1),
    "day": ("days", 1),
    "days": ("days", 1),
    "week": ("weeks", 1),
    "weeks": ("weeks", 1),
    "fortnight": ("weeks", 2),
    "fortnights": ("weeks", 2),
    "month": ("months", 1),
    "months": ("months", 1),
    "year": ("years", 1),
    "years": ("years", 1),
}

_ANCHORS = ("now", "today", "tomorrow", "yesterday")

_TERM_RE = re.compile(r"\s*([+-]?)\s*(\d{1,9})\s*([a-z]+)\s*")


def _anchor(keyword: str, now: datetime) -> datetime:
    if keyword == "now":
        return now
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if keyword == "today":
        return midnight
    if keyword == "tomorrow":
        return midnight + timedelta(days=1)
    return midnight - timedelta(days=1)


def parse_relative_time(expression: str, now: datetime) -> datetime:
    """Resolve a relative time expression against ``now``.

    Args:
        expression: Expression such as ``"+1 day"`` or ``"-30 minutes"``.
        now: Reference instant.

    Returns:
        The resolved absolute datetime (same tzinfo as ``now``).

    Raises:
        InvalidExpiryError: If the expression cannot be parsed.
    """
    text = expression.strip().lower()
    if not text:
        raise InvalidExpiryError(expression, "An empty expiry time was provided")

    result = now
    pos = 0
    first_word = text.split(maxsplit=1)[0]
    if first_word in _ANCHORS:
        result = _anchor(first_word, now)
        pos = len(first_word)

    delta = relativedelta()
    while pos < len(text):
        match = _TERM_RE.match(text, pos)
        if match is None or match.end() == pos:
            raise InvalidExpiryError(
                expression, "An invalid auth code expiry time was provided"
            )
        sign, amount, unit = match.groups()
        if unit not in _UNITS:
            raise InvalidExpiryError(
                expression, f"Unknown time unit {unit!r} in expiry time"
            )
        keyword, multiplier = _UNITS[unit]
        value = int(amount) * multiplier
        if sign == "-":
            value = -value
        delta += relativedelta(**{keyword: value})
        pos = match.end()

    try:
        return result + delta
    except (OverflowError, ValueError) as exc:
        raise InvalidExpiryError(
            expression, "The expiry time is out of the supported date range"
        ) from exc
