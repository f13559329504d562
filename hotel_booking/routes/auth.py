from typing import Any, Optional

import structlog
from fastapi import APIRouter, Body, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from hotel_booking.auth.cookies import clear_session_cookies, set_session_cookies
from hotel_booking.auth.gate import REFRESH_TOKEN_COOKIE
from hotel_booking.auth.tokens import IssuedSession, TokenService
from hotel_booking.config import Settings
from hotel_booking.dependencies import (
    get_account_service,
    get_current_principal,
    get_settings,
    get_token_service,
)
from hotel_booking.domain.records import Principal
from hotel_booking.errors import AuthenticationError
from hotel_booking.routes._session_helpers import client_metadata, session_body
from hotel_booking.schemas.auth import (
    ChangePasswordPayload,
    ForgotPasswordPayload,
    LoginPayload,
    RefreshTokenPayload,
    RegisterPayload,
    ResetPasswordPayload,
    UserOut,
)
from hotel_booking.services.accounts import AccountService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterPayload,
    accounts: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    """
    Register a regular user account. Does not log the user in.

    Returns:
        dict: The created user
    """
    user = accounts.register(payload.name, payload.email, payload.password)
    return {
        "success": True,
        "message": "User registered successfully",
        "user": UserOut.from_record(user).model_dump(mode="json"),
    }


def _login_response(session: IssuedSession, settings: Settings, message: str) -> JSONResponse:
    response = JSONResponse(content=session_body(session, message))
    set_session_cookies(response, session.tokens, settings)
    return response


@router.post("/login")
def login(
    payload: LoginPayload,
    request: Request,
    accounts: AccountService = Depends(get_account_service),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """
    Log a regular user in and set the session cookies. Admins must use /auth/admin/login.
    """
    user_agent, ip_address = client_metadata(request)
    session = accounts.login(payload.email, payload.password, user_agent, ip_address)
    return _login_response(session, settings, "Login successful")


@router.post("/admin/login")
def admin_login(
    payload: LoginPayload,
    request: Request,
    accounts: AccountService = Depends(get_account_service),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    user_agent, ip_address = client_metadata(request)
    session = accounts.admin_login(payload.email, payload.password, user_agent, ip_address)
    return _login_response(session, settings, "Admin login successful")


@router.post("/refresh-token")
def refresh_token(
    request: Request,
    payload: Optional[RefreshTokenPayload] = Body(None),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """
    Rotate the refresh token from the ``refreshToken`` cookie (or the body).

    On failure the session cookies are cleared and the error is returned as 401.
    """
    presented = request.cookies.get(REFRESH_TOKEN_COOKIE) or (
        payload.refresh_token if payload else None
    )
    user_agent, ip_address = client_metadata(request)

    try:
        session = tokens.rotate_refresh_token(presented or "", user_agent, ip_address)
    except AuthenticationError as e:
        response = JSONResponse(status_code=e.http_status, content=e.to_payload())
        clear_session_cookies(response)
        return response

    return _login_response(session, settings, "Token refreshed successfully")


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    accounts: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    """Revoke the refresh token, if any, and clear the session cookies."""
    accounts.logout(request.cookies.get(REFRESH_TOKEN_COOKIE))
    clear_session_cookies(response)
    return {"success": True, "message": "Logout successful"}


@router.post("/forgot-password")
def forgot_password(
    payload: ForgotPasswordPayload,
    accounts: AccountService = Depends(get_account_service),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """
    Start a password reset.

    The response is the same whether or not the email is registered. There is no mail
    delivery in this service; with LOG_LEVEL=DEBUG the token is echoed for local testing.
    """
    token = accounts.request_password_reset(payload.email)
    body: dict[str, Any] = {
        "success": True,
        "message": "If the email is registered, password reset instructions have been sent",
    }
    if settings.debug and token is not None:
        body["reset_token"] = token
    return body


@router.post("/reset-password")
def reset_password(
    payload: ResetPasswordPayload,
    accounts: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    accounts.reset_password(payload.token, payload.password)
    return {"success": True, "message": "Password reset successful"}


@router.post("/change-password")
def change_password(
    payload: ChangePasswordPayload,
    principal: Principal = Depends(get_current_principal),
    accounts: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    accounts.change_password(principal, payload.current_password, payload.new_password)
    return {"success": True, "message": "Password changed successfully"}


@router.get("/me")
def me(
    principal: Principal = Depends(get_current_principal),
    accounts: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    user = accounts.get_profile(principal)
    return {"success": True, "user": UserOut.from_record(user).model_dump(mode="json")}
