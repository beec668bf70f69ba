"""Auth code stores."""

from authcode.repositories.auth_code_repository import AuthCodeRepository
from authcode.repositories.base import AuthCodeStore
from authcode.repositories.in_memory import InMemoryAuthCodeStore

__all__ = [
    "AuthCodeRepository",
    "AuthCodeStore",
    "InMemoryAuthCodeStore",
]
