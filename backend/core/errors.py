"""
Error taxonomy shared by every layer.

Stores and services raise these; the exception handlers registered in
``main.py`` turn each one into a stable status code plus a short
machine-readable reason.  Anything that is *not* an ``AppError`` is logged
and answered with a generic 500.
"""

from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    reason: str = "internal_error"
    message: str = "Internal error"

    def __init__(self, message: str | None = None, *, reason: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message
        if reason:
            self.reason = reason


class InvalidCredentials(AppError):
    # Same message whether the email is unknown or the password is wrong
    status_code = status.HTTP_401_UNAUTHORIZED
    reason = "invalid_credentials"
    message = "Invalid email or password"


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    reason = "unauthorized"
    message = "Missing, invalid or expired session"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    reason = "forbidden"
    message = "Access denied"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    reason = "conflict"
    message = "Resource already exists"


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    reason = "validation_error"
    message = "Invalid input"


class NotConfigured(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    reason = "not_configured"
    message = "Meeting server not configured"


class UpstreamUnavailable(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    reason = "upstream_unavailable"
    message = "Meeting server request failed"


class UpstreamInvalidResponse(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    reason = "upstream_invalid_response"
    message = "Meeting server returned a malformed response"
