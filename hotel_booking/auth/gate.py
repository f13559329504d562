"""
Authorization gate.

Turns a request's credentials into a ``Principal`` and enforces role and ownership
rules. Callers are resolved from the ``Authorization: Bearer`` header first and the
``token`` cookie second. The FastAPI wiring lives in ``hotel_booking.dependencies``;
this module has no web framework imports so services can use the same checks.
"""

from __future__ import annotations

from typing import Mapping, Optional

import structlog

from hotel_booking.auth.tokens import TokenService
from hotel_booking.db.gateway import Database
from hotel_booking.db.readers.users import get_user
from hotel_booking.domain.enums import Role
from hotel_booking.domain.records import BookingRecord, Principal
from hotel_booking.errors import AuthenticationError, ForbiddenError, UnauthenticatedError

logger = structlog.get_logger(__name__)

ACCESS_TOKEN_COOKIE = "token"
REFRESH_TOKEN_COOKIE = "refreshToken"


def extract_access_token(
    authorization: Optional[str], cookies: Mapping[str, str]
) -> Optional[str]:
    """
    Pick the access token from the bearer header, falling back to the cookie.

    Args:
        authorization: Raw ``Authorization`` header value
        cookies: Request cookies

    Returns:
        Optional[str]: The token, or None if the request carries neither
    """
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    cookie_token = cookies.get(ACCESS_TOKEN_COOKIE)
    return cookie_token or None


def require_role(principal: Principal, *roles: Role) -> Principal:
    """
    Raises:
        ForbiddenError: If the principal's role is not one of ``roles``
    """
    if principal.role not in roles:
        raise ForbiddenError("You do not have permission to perform this action")
    return principal


def is_owner_or_admin(principal: Principal, booking: BookingRecord) -> bool:
    if principal.is_admin:
        return True
    return booking.user_id is not None and booking.user_id == principal.user_id


def ensure_owner_or_admin(principal: Principal, booking: BookingRecord) -> None:
    """
    Raises:
        ForbiddenError: If the principal neither owns the booking nor is an admin.
            Guest bookings (no owner) are admin-only.
    """
    if not is_owner_or_admin(principal, booking):
        raise ForbiddenError("You do not have permission to modify this booking")


class AuthorizationGate:
    """Resolves request credentials into a principal backed by a live user row."""

    def __init__(self, db: Database, tokens: TokenService):
        self.db = db
        self.tokens = tokens

    def authenticate(self, token: Optional[str]) -> Principal:
        """
        Verify an access token and load its user.

        The user row is re-read on every request so accounts deleted after the token
        was issued are locked out immediately, and role changes take effect.

        Raises:
            UnauthenticatedError: If the token is missing, invalid, expired, or its user
                no longer exists
        """
        if not token:
            raise UnauthenticatedError("Not authorized to access this route")

        try:
            claims = self.tokens.verify_access_token(token)
        except AuthenticationError as e:
            logger.info("access_token_rejected", reason=e.code)
            raise UnauthenticatedError("Invalid or expired token", details={"reason": e.code})

        with self.db.connect() as conn:
            user = get_user(conn, claims.user_id)

        if user is None:
            logger.info("access_token_user_missing", user_id=str(claims.user_id))
            raise UnauthenticatedError("User not found")

        return Principal(user_id=user.id, role=user.role, name=user.name, email=user.email)

    def authenticate_request(
        self, authorization: Optional[str], cookies: Mapping[str, str]
    ) -> Principal:
        return self.authenticate(extract_access_token(authorization, cookies))
