"""
Account service: registration, login, logout, and password management.

Logins issue a session through ``TokenService``; password resets use single-use opaque
tokens stored as digests, like refresh tokens.
"""

from __future__ import annotations

from typing import Optional

import structlog

from hotel_booking.auth.passwords import (
    burn_verification,
    hash_password,
    validate_password,
    verify_password,
)
from hotel_booking.auth.tokens import IssuedSession, TokenService
from hotel_booking.config import Settings
from hotel_booking.db.gateway import Database
from hotel_booking.db.readers.tokens import get_password_reset
from hotel_booking.db.readers.users import get_user, get_user_by_email
from hotel_booking.db.writers.tokens import (
    delete_password_reset,
    delete_password_resets_for_user,
    insert_password_reset,
    revoke_all_refresh_tokens_for_user,
)
from hotel_booking.db.writers.users import insert_user, update_user_password
from hotel_booking.domain.enums import Role
from hotel_booking.domain.records import Principal, UserRecord
from hotel_booking.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTokenError,
    NotFoundError,
    TokenExpiredError,
    UnauthenticatedError,
    ValidationError,
)
from hotel_booking.utils.datetime import Clock, SystemClock
from hotel_booking.utils.ids import hash_token, new_opaque_token

logger = structlog.get_logger(__name__)


class AccountService:
    def __init__(
        self,
        db: Database,
        settings: Settings,
        tokens: TokenService,
        clock: Optional[Clock] = None,
    ):
        self.db = db
        self.settings = settings
        self.tokens = tokens
        self.clock = clock or SystemClock()

    def register(self, name: str, email: str, password: str) -> UserRecord:
        """
        Create a regular user account.

        Raises:
            ValidationError: Blank name/email or a too-short password
            ConflictError: The email is already registered
        """
        name = name.strip()
        email = email.strip().lower()
        if not name or not email:
            raise ValidationError("Name and email are required")
        validate_password(password)
        password_hash = hash_password(password)

        with self.db.transaction() as conn:
            if get_user_by_email(conn, email) is not None:
                raise ConflictError("User with this email already exists")
            user_id = insert_user(conn, name=name, email=email, password_hash=password_hash)
            user = get_user(conn, user_id)

        logger.info("user_registered", user_id=str(user_id))
        return user

    def _check_credentials(self, email: str, password: str) -> UserRecord:
        with self.db.connect() as conn:
            user = get_user_by_email(conn, email)
        if user is None:
            burn_verification(password)
            raise UnauthenticatedError("Invalid credentials")
        if not verify_password(password, user.password_hash):
            raise UnauthenticatedError("Invalid credentials")
        return user

    def login(
        self,
        email: str,
        password: str,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> IssuedSession:
        """
        Log a regular user in. Admin accounts are sent to the admin portal.

        Raises:
            UnauthenticatedError: Unknown email or wrong password
            ForbiddenError: The account is an admin
        """
        user = self._check_credentials(email, password)
        if user.role is Role.ADMIN:
            raise ForbiddenError("Please use admin login")

        tokens = self.tokens.issue_session(user, user_agent=user_agent, ip_address=ip_address)
        logger.info("user_logged_in", user_id=str(user.id))
        return IssuedSession(user=user, tokens=tokens)

    def admin_login(
        self,
        email: str,
        password: str,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> IssuedSession:
        user = self._check_credentials(email, password)
        if user.role is not Role.ADMIN:
            logger.warning("admin_login_denied", user_id=str(user.id))
            raise ForbiddenError("Access denied. Admin privileges required")

        tokens = self.tokens.issue_session(user, user_agent=user_agent, ip_address=ip_address)
        logger.info("admin_logged_in", user_id=str(user.id))
        return IssuedSession(user=user, tokens=tokens)

    def logout(self, refresh_token: Optional[str]) -> None:
        self.tokens.revoke(refresh_token)

    def get_profile(self, actor: Principal) -> UserRecord:
        with self.db.connect() as conn:
            user = get_user(conn, actor.user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def request_password_reset(self, email: str) -> Optional[str]:
        """
        Start a password reset.

        Any outstanding reset for the user is replaced. The raw token is returned for
        delivery to the user; only its digest is stored.

        Returns:
            Optional[str]: The reset token, or None if no account uses ``email``
        """
        now = self.clock.now()
        with self.db.transaction() as conn:
            user = get_user_by_email(conn, email)
            if user is None:
                logger.info("password_reset_unknown_email")
                return None
            token = new_opaque_token()
            delete_password_resets_for_user(conn, user.id)
            insert_password_reset(
                conn,
                user_id=user.id,
                token_hash=hash_token(token),
                expires_at=now + self.settings.password_reset_ttl,
            )

        logger.info("password_reset_requested", user_id=str(user.id))
        return token

    def reset_password(self, token: str, new_password: str) -> None:
        """
        Finish a password reset and sign the user out everywhere.

        Raises:
            ValidationError: The new password is too short
            InvalidTokenError: The token is unknown or already used
            TokenExpiredError: The token is past its expiry (it is deleted)
        """
        validate_password(new_password)
        if not token:
            raise InvalidTokenError("Invalid or expired token")
        password_hash = hash_password(new_password)

        expired = False
        with self.db.transaction() as conn:
            reset = get_password_reset(conn, hash_token(token))
            if reset is None:
                raise InvalidTokenError("Invalid or expired token")

            delete_password_reset(conn, reset.id)
            if self.clock.now() >= reset.expires_at:
                # Commit the deletion, then report the expiry
                expired = True
            else:
                update_user_password(conn, reset.user_id, password_hash)
                revoke_all_refresh_tokens_for_user(conn, reset.user_id)

        if expired:
            logger.info("password_reset_expired", user_id=str(reset.user_id))
            raise TokenExpiredError("Token has expired")
        logger.info("password_reset_completed", user_id=str(reset.user_id))

    def change_password(self, actor: Principal, current_password: str, new_password: str) -> None:
        """
        Raises:
            ValidationError: Current password is wrong or the new one is too short
            NotFoundError: The account no longer exists
        """
        validate_password(new_password)
        with self.db.connect() as conn:
            user = get_user(conn, actor.user_id)
        if user is None:
            raise NotFoundError("User not found")
        if not verify_password(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")

        with self.db.transaction() as conn:
            update_user_password(conn, user.id, hash_password(new_password))
        logger.info("password_changed", user_id=str(user.id))
