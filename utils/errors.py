"""
Error taxonomy for the credential and session core.

Every failure on a security-sensitive path collapses to one of these kinds.
Each kind carries a stable machine code and an HTTP status so the API layer can
render it without knowing which branch produced it.
"""
from __future__ import annotations


class AuthError(Exception):
    """Base class for domain errors rendered by api.errors."""

    code = "AUTH_ERROR"
    status = 400
    message = "Authentication error"

    def __init__(self, message: str | None = None, status: int | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message
        if status:
            self.status = status


class DuplicateAddress(AuthError):
    code = "DUPLICATE_ADDRESS"
    status = 400
    message = "Email already in use."


class InvalidCredentials(AuthError):
    # Same message for "no such user" and "wrong password"
    code = "INVALID_CREDENTIALS"
    status = 403
    message = "Invalid login credentials."


class InvalidRefreshToken(AuthError):
    # Covers not found, expired, revoked and already rotated
    code = "INVALID_REFRESH_TOKEN"
    status = 403
    message = "Invalid refresh token."


class InvalidOrExpiredCode(AuthError):
    code = "INVALID_OR_EXPIRED_CODE"
    status = 400
    message = "Invalid or expired code."


class DeliveryFailure(AuthError):
    """The code was stored but the notification could not be sent."""

    code = "DELIVERY_FAILURE"
    status = 503
    message = "The code could not be delivered. Please retry."


class InvalidAccessToken(AuthError):
    code = "UNAUTHENTICATED"
    status = 401
    message = "Invalid access token."


class TokenExpired(InvalidAccessToken):
    message = "Token expired."


class InvalidSignature(InvalidAccessToken):
    message = "Invalid token."
