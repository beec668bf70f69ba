"""Single-use auth codes.

Auth codes let a bearer enable a hidden record, delete a record or access a
page without logging in. AuthCodeFactory issues them, AuthCodeValidator
consumes them.
"""

from authcode.core.errors import (
    AuthCodeError,
    ConfigurationError,
    InvalidExpiryError,
    InvalidTokenError,
)
from authcode.models.auth_code import AuthCode, AuthCodeAction, AuthCodeType
from authcode.services.auth_code_factory import AuthCodeFactory
from authcode.services.auth_code_validator import AuthCodeValidator, ValidatorOptions

__all__ = [
    "AuthCode",
    "AuthCodeAction",
    "AuthCodeError",
    "AuthCodeFactory",
    "AuthCodeType",
    "AuthCodeValidator",
    "ConfigurationError",
    "InvalidExpiryError",
    "InvalidTokenError",
    "ValidatorOptions",
]
