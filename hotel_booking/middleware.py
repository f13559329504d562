"""
FastAPI middleware for request tracing and proactive session refresh.

``RequestIDMiddleware`` tags every request with a unique id and binds it into the
structlog context so every log line of the request carries it. ``TokenRefreshMiddleware``
rotates sessions whose access token is about to expire.
"""

from __future__ import annotations

import uuid
from typing import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from hotel_booking.auth.cookies import set_session_cookies
from hotel_booking.auth.gate import REFRESH_TOKEN_COOKIE, extract_access_token
from hotel_booking.auth.tokens import TokenService
from hotel_booking.errors import AuthenticationError, DomainError

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add unique request IDs to each HTTP request.

    This middleware reuses the caller's ``X-Request-ID`` or generates a UUID, and:
    1. Stores it in request.state.request_id for access in route handlers
    2. Binds it into structlog's contextvars for the duration of the request
    3. Adds it to the response as X-Request-ID header for client correlation

    Example:
        >>> app.add_middleware(RequestIDMiddleware)
        >>>
        >>> # Every log line emitted while handling the request includes:
        >>> # "request_id": "550e8400-e29b-41d4-a716-446655440000"
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """
        Process each request by adding a unique request ID.

        Args:
            request: Incoming FastAPI request
            call_next: Next middleware or route handler in chain

        Returns:
            Response with X-Request-ID header added
        """
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id, method=request.method, path=request.url.path
        )
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class TokenRefreshMiddleware(BaseHTTPMiddleware):
    """
    Rotate the session when the presented access token is close to expiry.

    Runs after the route handler. Applies only when the access token is still valid, has
    less than ``TOKEN_REFRESH_THRESHOLD`` left, and a ``refreshToken`` cookie is present;
    fresh cookies are then set on the response. A failed rotation is logged and the
    response is returned unchanged.
    """

    # Routes that manage the session themselves
    SKIP_PREFIXES = ("/auth/",)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response = await call_next(request)

        if request.url.path.startswith(self.SKIP_PREFIXES) or response.status_code >= 400:
            return response

        access_token = extract_access_token(request.headers.get("authorization"), request.cookies)
        refresh_token = request.cookies.get(REFRESH_TOKEN_COOKIE)
        if not access_token or not refresh_token:
            return response

        tokens: TokenService = request.app.state.tokens
        try:
            claims = tokens.verify_access_token(access_token)
        except AuthenticationError:
            return response

        remaining = claims.expires_at - tokens.clock.now()
        if remaining >= request.app.state.settings.token_refresh_threshold:
            return response

        try:
            session = await run_in_threadpool(
                tokens.rotate_refresh_token,
                refresh_token,
                request.headers.get("user-agent"),
                request.client.host if request.client else None,
                expected_user_id=claims.user_id,
            )
        except DomainError as e:
            logger.warning("proactive_refresh_failed", reason=e.code)
            return response

        set_session_cookies(response, session.tokens, request.app.state.settings)
        logger.info("proactive_refresh_applied", user_id=str(session.user.id))
        return response
