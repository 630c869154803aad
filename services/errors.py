"""
Service-layer failure categories.

Each class carries the HTTP status and a stable error code so the transport
layer can render it without knowing about the service internals.
"""
from __future__ import annotations

from typing import Optional


class ServiceError(Exception):
    status_code: int = 400
    error_code: str = "BAD_REQUEST"

    def __init__(self, message: str, *, errors: Optional[list] = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ValidationError(ServiceError):
    """Malformed input; the caller may correct it and retry."""
    status_code = 400
    error_code = "VALIDATION_ERROR"


class PasswordMismatch(ServiceError):
    status_code = 400
    error_code = "PASSWORD_MISMATCH"


class EmailTaken(ServiceError):
    status_code = 400
    error_code = "EMAIL_TAKEN"


class InvalidCredentials(ServiceError):
    status_code = 400
    error_code = "INVALID_CREDENTIALS"


class Unauthorized(ServiceError):
    """Missing or unverifiable token."""
    status_code = 401
    error_code = "UNAUTHORIZED"


class Forbidden(ServiceError):
    """Identity is known but not permitted."""
    status_code = 403
    error_code = "FORBIDDEN"


class NotFound(ServiceError):
    status_code = 404
    error_code = "NOT_FOUND"


class InternalError(ServiceError):
    """Opaque failure; details are logged, never returned."""
    status_code = 500
    error_code = "INTERNAL_ERROR"


__all__ = [
    "ServiceError",
    "ValidationError",
    "PasswordMismatch",
    "EmailTaken",
    "InvalidCredentials",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "InternalError",
]
