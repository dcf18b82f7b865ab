"""errors.py — Error taxonomy shared by the key codec, store adapter and services.

Handlers map these to HTTP responses:

    ValidationError  -> 400 with the short machine-readable ``code``
    NotFoundError    -> default document, or 404 where no default exists
    StoreError       -> 500 with the underlying message
"""
from __future__ import annotations

from typing import Optional

__all__ = [
    "NotFoundError",
    "StoreError",
    "ValidationError",
]


class ValidationError(ValueError):
    """Untrusted input rejected before any store call."""

    def __init__(self, code: str, message: Optional[str] = None):
        self.code = code
        self.message = message or code
        super().__init__(self.message)


class StoreError(Exception):
    """Backing store failure (network, permission, unreadable object)."""

    def __init__(self, message: str, *, key: str = "", code: str = ""):
        self.key = key
        self.code = code
        super().__init__(message)


class NotFoundError(StoreError):
    """The requested key does not exist."""

    def __init__(self, key: str):
        super().__init__(f"Object not found: {key}", key=key, code="NoSuchKey")
