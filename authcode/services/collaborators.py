"""Interfaces the auth code core calls out to, plus mapping-based adapters.

The validator never touches HTTP, sessions or record tables directly. It
talks to these protocols; the web layer (``authcode.api.deps``) plugs in
adapters built on the current request.
"""

from collections.abc import Mapping, MutableMapping
from typing import Any, Protocol

from authcode.models.auth_code import AuthCode


class RequestParamSource(Protocol):
    """Read raw values from inbound request parameters."""

    def get(self, name: str, prefix: str = "") -> str | None:
        """Return the parameter value, optionally nested under ``prefix``."""
        ...


class SessionBridge(Protocol):
    """Hold one auth code in the user's session."""

    def get(self) -> str | None:
        """Return the stored code, if any."""
        ...

    def set(self, code: str) -> None:
        """Store ``code`` for later requests."""
        ...

    def clear(self) -> None:
        """Forget the stored code."""
        ...


class SchemaLookup(Protocol):
    """Resolve table metadata needed to generate record auth codes."""

    def disabled_column_for(self, table: str) -> str | None:
        """Return the column marking rows of ``table`` as hidden, if configured."""
        ...


class ActionExecutor(Protocol):
    """Perform the record mutation a consumed auth code calls for.

    Errors raised here propagate to the caller of the validator unchanged.
    """

    async def enable(self, auth_code: AuthCode, touch_timestamp: bool) -> None:
        """Clear the hidden flag of the referenced row."""
        ...

    async def delete(self, auth_code: AuthCode, force: bool) -> None:
        """Delete the referenced row (hard delete when ``force``)."""
        ...


class MappingRequestParams:
    """RequestParamSource over one or more mappings.

    Mappings are searched in order, so pass query parameters before form
    data to let the query string win. With a prefix, the value is read from
    ``mapping[prefix][name]`` when that is a nested mapping, or from the
    flat form-encoded key ``"prefix[name]"`` otherwise.
    """

    def __init__(self, *sources: Mapping[str, Any]) -> None:
        self._sources = sources

    def get(self, name: str, prefix: str = "") -> str | None:
        prefix = prefix.strip()
        for source in self._sources:
            if prefix:
                value = self._lookup_prefixed(source, prefix, name)
            else:
                value = source.get(name)
            if isinstance(value, str):
                return value
        return None

    @staticmethod
    def _lookup_prefixed(source: Mapping[str, Any], prefix: str, name: str) -> Any:
        nested = source.get(prefix)
        if isinstance(nested, Mapping):
            return nested.get(name)
        return source.get(f"{prefix}[{name}]")


class MappingSessionBridge:
    """SessionBridge storing the code under one key of a mutable mapping.

    Works with Starlette's ``request.session`` or any plain dict.
    """

    def __init__(self, session: MutableMapping[str, Any], key: str = "authcode") -> None:
        self._session = session
        self._key = key

    def get(self) -> str | None:
        value = self._session.get(self._key)
        return value if isinstance(value, str) else None

    def set(self, code: str) -> None:
        self._session[self._key] = code

    def clear(self) -> None:
        self._session.pop(self._key, None)
