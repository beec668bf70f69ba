"""Auth code error classes.

Every error carries a machine-readable code, a human-readable message and
the HTTP status a web layer should map it to. The handler in
``authcode.api.errors`` renders them into the standard error envelope.

Mutation errors raised by an ActionExecutor are not wrapped;
they reach the caller unchanged.
"""


class AuthCodeError(Exception):
    """Base class for auth code errors.

    Attributes:
        code: Machine-readable error code (e.g., "INVALID_AUTH_CODE").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class InvalidTokenError(AuthCodeError):
    """No usable auth code was submitted (404).

    Raised when nothing resolves to a stored, non-expired auth code and the
    caller did not mark the code as optional. The message stays generic so
    callers can show it to end users.
    """

    def __init__(self, message: str = "Invalid or expired auth code") -> None:
        super().__init__(
            code="INVALID_AUTH_CODE",
            message=message,
            status_code=404,
        )


class ConfigurationError(AuthCodeError):
    """Auth code setup is incomplete or inconsistent (500).

    Not recoverable at request time; must be fixed in configuration.
    """

    def __init__(
        self,
        message: str,
        code: str = "CONFIGURATION_ERROR",
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=500,
        )


class InvalidExpiryError(ConfigurationError):
    """Expiry expression does not parse or is not in the future (500)."""

    def __init__(self, expression: str, reason: str) -> None:
        self.expression = expression
        super().__init__(
            message=f"{reason}: {expression!r}",
            code="INVALID_EXPIRY",
        )


class CleanupError(AuthCodeError):
    """Raised when the standalone expiry purge fails at the database level."""

    def __init__(self, message: str) -> None:
        super().__init__(
            code="CLEANUP_ERROR",
            message=message,
            status_code=500,
        )
