"""
FastAPI dependency injection providers.

Services are constructed once by ``create_app`` and stored on ``app.state``; these
providers hand them to route handlers. Tests can swap any of them through
``app.dependency_overrides``.

Example:
    >>> @router.get("/bookings")
    >>> def list_my_bookings(
    ...     principal: Principal = Depends(get_current_principal),
    ...     bookings: BookingService = Depends(get_booking_service),
    ... ):
    ...     return bookings.list_my_bookings(principal)
"""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import Depends, Request

from hotel_booking.auth.gate import AuthorizationGate, extract_access_token, require_role
from hotel_booking.auth.tokens import TokenService
from hotel_booking.config import Settings
from hotel_booking.db.gateway import Database
from hotel_booking.domain.enums import Role
from hotel_booking.domain.records import Principal
from hotel_booking.errors import AuthenticationError
from hotel_booking.services.accounts import AccountService
from hotel_booking.services.bookings import BookingService

logger = structlog.get_logger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.db


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_gate(request: Request) -> AuthorizationGate:
    return request.app.state.gate


def get_booking_service(request: Request) -> BookingService:
    return request.app.state.bookings


def get_account_service(request: Request) -> AccountService:
    return request.app.state.accounts


def get_current_principal(
    request: Request, gate: AuthorizationGate = Depends(get_gate)
) -> Principal:
    """
    Resolve the caller from the bearer header or the ``token`` cookie.

    Raises:
        UnauthenticatedError: No credentials, a bad token, or a deleted user
    """
    return gate.authenticate_request(request.headers.get("authorization"), request.cookies)


def get_optional_principal(
    request: Request, gate: AuthorizationGate = Depends(get_gate)
) -> Optional[Principal]:
    """
    Like :func:`get_current_principal`, but anonymous callers resolve to None.

    A stale or unusable token is treated as no token, so a guest flow is not blocked by
    a leftover cookie. Routes that need a caller still reject None themselves.
    """
    token = extract_access_token(request.headers.get("authorization"), request.cookies)
    if token is None:
        return None
    try:
        return gate.authenticate(token)
    except AuthenticationError as e:
        logger.info("optional_principal_ignored", reason=e.code)
        return None


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    return require_role(principal, Role.ADMIN)
