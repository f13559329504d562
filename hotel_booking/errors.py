"""
Error taxonomy for the booking and session core.

Every failure a service can report is one of these exceptions. Each carries a stable
machine-readable code and the HTTP status the API layer maps it to, so route handlers
never branch on error text.
"""

from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for all domain-specific errors."""

    http_status: int = 500
    default_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(message)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": False,
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(DomainError):
    """Malformed input, e.g. check-out not after check-in."""

    http_status = 400
    default_code = "validation_error"


class NotFoundError(DomainError):
    """Room, booking or user does not exist."""

    http_status = 404
    default_code = "not_found"


class RoomUnavailableError(DomainError):
    """The requested stay overlaps an existing booking."""

    http_status = 409
    default_code = "room_unavailable"


class InvalidTransitionError(DomainError):
    """Status change outside the allowed transition table."""

    http_status = 409
    default_code = "invalid_transition"


class AlreadyCancelledError(DomainError):
    http_status = 409
    default_code = "already_cancelled"


class AuthenticationError(DomainError):
    """Base for every failure that should produce a 401."""

    http_status = 401
    default_code = "unauthenticated"


class UnauthenticatedError(AuthenticationError):
    pass


class InvalidTokenError(AuthenticationError):
    default_code = "invalid_token"


class TokenExpiredError(AuthenticationError):
    default_code = "token_expired"


class TokenRevokedError(AuthenticationError):
    default_code = "token_revoked"


class ForbiddenError(DomainError):
    http_status = 403
    default_code = "forbidden"


class ConflictError(DomainError):
    """A concurrent writer won the race, or a unique constraint was hit."""

    http_status = 409
    default_code = "conflict"


class StoreUnavailableError(DomainError):
    """The store timed out or could not be reached."""

    http_status = 503
    default_code = "store_unavailable"


class InternalError(DomainError):
    """Unexpected failure. The message is safe to return; the cause is logged only."""

    http_status = 500
    default_code = "internal_error"
