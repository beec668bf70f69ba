"""Auth code generation, validation and housekeeping."""

from authcode.services.auth_code_factory import AuthCodeFactory
from authcode.services.auth_code_validator import (
    AuthCodeValidator,
    ValidationStage,
    ValidatorOptions,
)

__all__ = [
    "AuthCodeFactory",
    "AuthCodeValidator",
    "ValidationStage",
    "ValidatorOptions",
]
