"""
Error taxonomy shared by the auth core and the HTTP layer.

Every error carries a `kind` (matchable, never inferred from the message)
and the HTTP status the boundary renders it with. Messages on
authentication failures are deliberately generic.
"""
from __future__ import annotations

import enum


class ErrorKind(enum.Enum):
    VALIDATION = "VALIDATION_ERROR"
    AUTHENTICATION = "UNAUTHORIZED"
    CONFLICT = "CONFLICT"
    INFRASTRUCTURE = "INTERNAL_ERROR"


class ServiceError(Exception):
    kind = ErrorKind.INFRASTRUCTURE
    status = 500
    message = "An unexpected error occurred"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationFailed(ServiceError):
    kind = ErrorKind.VALIDATION
    status = 400
    message = "Invalid input"


class AuthenticationFailed(ServiceError):
    kind = ErrorKind.AUTHENTICATION
    status = 401
    message = "Unauthorized"


class InvalidCredentials(AuthenticationFailed):
    message = "Invalid username or password"


class InvalidToken(AuthenticationFailed):
    message = "Invalid or expired access token"


class RejectReason(enum.Enum):
    INVALID = "invalid"
    INACTIVE = "inactive"


class RefreshRejected(AuthenticationFailed):
    """Refresh token unknown, inactive, or owned by a vanished user."""

    def __init__(self, reason: RejectReason):
        self.reason = reason
        if reason is RejectReason.INACTIVE:
            message = "Refresh token is not active"
        else:
            message = "Invalid refresh token"
        super().__init__(message)


class Conflict(ServiceError):
    kind = ErrorKind.CONFLICT
    status = 409
    message = "Conflict"


class UsernameTaken(Conflict):
    message = "Username is already taken"


class InfrastructureError(ServiceError):
    """Store, signing or hashing fault. Safe for the caller to retry."""


class ConfigurationError(ValueError):
    """Raised at startup when auth settings are unusable."""
