"""
Typed failures raised by the auth core.

Every error carries the HTTP status and machine-readable code the API layer
renders (see api/errors.py), so services never import Flask.
"""
from __future__ import annotations


class AuthError(Exception):
    status = 400
    error = "BAD_REQUEST"
    default_message = "Bad request"

    def __init__(self, message: str | None = None, details: dict | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationFailed(AuthError):
    status = 422
    error = "VALIDATION_ERROR"
    default_message = "Invalid input"


class Conflict(AuthError):
    status = 409
    error = "CONFLICT"
    default_message = "Conflict"


class AuthenticationFailed(AuthError):
    # Message stays generic: callers must not learn which check failed
    status = 401
    error = "AUTHENTICATION_FAILED"
    default_message = "Authentication failed"


class Unauthenticated(AuthError):
    status = 401
    error = "UNAUTHENTICATED"
    default_message = "Authentication required"


class Forbidden(AuthError):
    status = 403
    error = "FORBIDDEN"
    default_message = "Access denied"


class NotFound(AuthError):
    status = 404
    error = "NOT_FOUND"
    default_message = "Resource not found"


class StoreUnavailable(AuthError):
    """The credential store timed out or is down. Safe to retry with backoff."""
    status = 503
    error = "STORE_UNAVAILABLE"
    default_message = "Credential store unavailable, retry later"
    retry_after = 5


class InvalidToken(Exception):
    """Raised by the token codec for bad signature, bad payload or expiry."""
