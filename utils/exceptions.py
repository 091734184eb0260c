"""
Application error taxonomy.

Every failure the session manager, the stores or the authorization gate can
produce is one of these classes. Each carries:
- status: HTTP status the API layer maps it to
- code: machine-readable constant for clients (switch/case on the frontend)
- message: production-safe text (4xx messages are shown verbatim)
"""
from __future__ import annotations


class ErrorCode:
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    MISSING_CREDENTIALS = "MISSING_CREDENTIALS"
    INVALID_OR_EXPIRED_TOKEN = "INVALID_OR_EXPIRED_TOKEN"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_REUSE_DETECTED = "TOKEN_REUSE_DETECTED"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_MALFORMED = "TOKEN_MALFORMED"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    DUPLICATE_EMAIL = "DUPLICATE_EMAIL"
    DUPLICATE_ISBN = "DUPLICATE_ISBN"
    NOT_FOUND = "NOT_FOUND"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"


class AppError(Exception):
    """Base class for all application-level errors."""

    status = 500
    code = "INTERNAL_ERROR"
    message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, details: dict | None = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)


# Authentication failures (401)

class AuthError(AppError):
    status = 401


class InvalidCredentials(AuthError):
    # Same text for unknown email and wrong password
    code = ErrorCode.INVALID_CREDENTIALS
    message = "Invalid credentials"


class MissingCredentials(AuthError):
    code = ErrorCode.MISSING_CREDENTIALS
    message = "Refresh token and session are required"


class InvalidOrExpiredToken(AuthError):
    code = ErrorCode.INVALID_OR_EXPIRED_TOKEN
    message = "Session is invalid or has expired. Please login again."


class InvalidToken(AuthError):
    code = ErrorCode.INVALID_TOKEN
    message = "Invalid refresh token"


class TokenReuseDetected(AuthError):
    code = ErrorCode.TOKEN_REUSE_DETECTED
    message = "Refresh token reuse detected. Session revoked, please login again."


class UserNotFound(AuthError):
    code = ErrorCode.USER_NOT_FOUND
    message = "User not found"


class TokenExpired(AuthError):
    code = ErrorCode.TOKEN_EXPIRED
    message = "Token expired. Please login again."


class TokenMalformed(AuthError):
    code = ErrorCode.TOKEN_MALFORMED
    message = "Invalid token format."


class Unauthenticated(AuthError):
    code = ErrorCode.UNAUTHENTICATED
    message = "Authentication required before authorization check"


# Authorization

class Forbidden(AppError):
    status = 403
    code = ErrorCode.FORBIDDEN
    message = "Access denied"


# Storage-level outcomes

class DuplicateEmail(AppError):
    status = 409
    code = ErrorCode.DUPLICATE_EMAIL
    message = "Email already registered"


class DuplicateIsbn(AppError):
    status = 409
    code = ErrorCode.DUPLICATE_ISBN
    message = "A book with this ISBN already exists"


class NotFound(AppError):
    status = 404
    code = ErrorCode.NOT_FOUND
    message = "Resource not found"


class StorageUnavailable(AppError):
    """Transient infrastructure failure; never an authentication verdict."""

    status = 503
    code = ErrorCode.STORAGE_UNAVAILABLE
    message = "Service temporarily unavailable"
