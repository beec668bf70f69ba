"""Error envelope and exception handler for FastAPI applications.

Host applications call ``register_exception_handlers(app)`` so auth code
errors render as ``{"error": {"code": ..., "message": ..., "details": ...}}``
with the status code each error carries.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from authcode.core.errors import AuthCodeError

logger = structlog.get_logger()


class ErrorDetail(BaseModel):
    """Error detail for response body.

    Attributes:
        code: Machine-readable error code (e.g., "INVALID_AUTH_CODE").
        message: Human-readable error message.
        details: Optional list of additional error details.
    """

    code: str
    message: str
    details: list[dict] | None = None


class ErrorResponse(BaseModel):
    """Standard error response envelope."""

    error: ErrorDetail


def auth_code_error_handler(request: Request, exc: AuthCodeError) -> JSONResponse:
    """Handle auth code errors.

    Args:
        request: The incoming request.
        exc: The AuthCodeError that was raised.

    Returns:
        JSONResponse with error envelope and the error's status code.
    """
    if exc.status_code >= 500:
        logger.error("auth_code_error", code=exc.code, path=request.url.path)
    else:
        logger.info("auth_code_error", code=exc.code, path=request.url.path)

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=exc.code,
                message=exc.message,
                details=exc.details,
            )
        ).model_dump(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the auth code error handler on an application."""
    app.add_exception_handler(AuthCodeError, auth_code_error_handler)  # type: ignore[arg-type]
