"""SQLAlchemy ORM models for authcode.

    from authcode.models import AuthCode, AuthCodeAction, AuthCodeType
"""

from authcode.models.auth_code import AuthCode, AuthCodeAction, AuthCodeType
from authcode.models.base import Base, UTCDateTime

__all__ = [
    "AuthCode",
    "AuthCodeAction",
    "AuthCodeType",
    "Base",
    "UTCDateTime",
]
