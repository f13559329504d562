"""Session cookies: ``token`` (access, 1 day) and ``refreshToken`` (7 days)."""

from __future__ import annotations

from starlette.responses import Response

from hotel_booking.auth.gate import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE
from hotel_booking.auth.tokens import TokenPair
from hotel_booking.config import Settings


def set_session_cookies(response: Response, tokens: TokenPair, settings: Settings) -> None:
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        tokens.access_token,
        max_age=int(settings.access_token_ttl.total_seconds()),
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        tokens.refresh_token,
        max_age=int(settings.refresh_token_ttl.total_seconds()),
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )


def clear_session_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    response.delete_cookie(REFRESH_TOKEN_COOKIE)
