"""
Internal helper functions for auth and booking route handlers.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import Request

from hotel_booking.auth.tokens import IssuedSession
from hotel_booking.schemas.auth import UserOut


def client_metadata(request: Request) -> tuple[Optional[str], Optional[str]]:
    """
    Extract the issuing client's metadata stored alongside refresh tokens.

    Args:
        request: Incoming request

    Returns:
        tuple: (User-Agent header, client IP address), each possibly None
    """
    user_agent = request.headers.get("user-agent")
    ip_address = request.client.host if request.client else None
    return user_agent, ip_address


def session_body(session: IssuedSession, message: str) -> dict[str, Any]:
    """
    Build the JSON body returned by login and refresh.

    The refresh token itself is only ever sent as an httpOnly cookie.
    """
    return {
        "success": True,
        "message": message,
        "token": session.tokens.access_token,
        "expires_at": session.tokens.access_expires_at.isoformat(),
        "user": UserOut.from_record(session.user).model_dump(mode="json"),
    }
