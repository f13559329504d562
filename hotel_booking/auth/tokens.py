"""
Token service.

Access tokens are signed JWTs (HS256 by default) and never touch the store. Refresh tokens
are opaque random strings; only their SHA-256 digest is persisted, and each one is
single-use: rotating it revokes it in the same transaction that stores its successor.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

import jwt
import structlog
from jwt import PyJWTError
from sqlalchemy.engine import Connection

from hotel_booking.config import Settings
from hotel_booking.db.gateway import Database
from hotel_booking.db.readers.tokens import get_refresh_token
from hotel_booking.db.readers.users import get_user
from hotel_booking.db.writers.tokens import (
    insert_refresh_token,
    mark_refresh_token_revoked,
    revoke_refresh_token,
)
from hotel_booking.domain.enums import Role
from hotel_booking.domain.records import UserRecord
from hotel_booking.errors import (
    DomainError,
    InvalidTokenError,
    TokenExpiredError,
    TokenRevokedError,
)
from hotel_booking.metrics import token_operations
from hotel_booking.utils.datetime import Clock, SystemClock
from hotel_booking.utils.ids import hash_token, new_opaque_token

logger = structlog.get_logger(__name__)

ACCESS_TOKEN_TYPE = "access"


@dataclass(frozen=True)
class AccessClaims:
    user_id: UUID
    role: Role
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    access_expires_at: datetime
    refresh_token: str
    refresh_expires_at: datetime


@dataclass(frozen=True)
class IssuedSession:
    """A user together with a freshly issued token pair."""

    user: UserRecord
    tokens: TokenPair


class TokenService:
    """
    Issues, verifies, rotates, and revokes session tokens.

    Args:
        db: Persistence gateway, used for refresh tokens only
        settings: Secret, algorithm, and lifetimes
        clock: Time source for issuing and for expiry checks
    """

    def __init__(self, db: Database, settings: Settings, clock: Optional[Clock] = None):
        self.db = db
        self.settings = settings
        self.clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Access tokens
    # ------------------------------------------------------------------

    def issue_access_token(self, user_id: UUID, role: Role) -> tuple[str, datetime]:
        """
        Sign a self-contained access token.

        Returns:
            tuple[str, datetime]: The token and its expiry
        """
        issued_at = self.clock.now().replace(microsecond=0)
        expires_at = issued_at + self.settings.access_token_ttl
        payload = {
            "sub": str(user_id),
            "role": Role(role).value,
            "type": ACCESS_TOKEN_TYPE,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)
        return token, expires_at

    def verify_access_token(self, token: str) -> AccessClaims:
        """
        Check signature and expiry. Does not touch the store.

        Expiry is compared against the injected clock rather than PyJWT's wall clock.

        Raises:
            TokenExpiredError: The token's expiry has passed
            InvalidTokenError: Bad signature, malformed token, or missing claims
        """
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self.settings.jwt_secret,
                algorithms=[self.settings.jwt_algorithm],
                options={"verify_exp": False, "verify_iat": False, "require": ["sub", "exp"]},
            )
        except PyJWTError as e:
            token_operations.labels(operation="verify", outcome="invalid_token").inc()
            raise InvalidTokenError("Invalid token") from e

        try:
            if payload.get("type", ACCESS_TOKEN_TYPE) != ACCESS_TOKEN_TYPE:
                raise ValueError("not an access token")
            user_id = UUID(str(payload["sub"]))
            role = Role(payload.get("role", Role.USER.value))
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
            issued_at = datetime.fromtimestamp(int(payload.get("iat", 0)), tz=timezone.utc)
        except (TypeError, ValueError) as e:
            token_operations.labels(operation="verify", outcome="invalid_token").inc()
            raise InvalidTokenError("Invalid token") from e

        if self.clock.now() >= expires_at:
            token_operations.labels(operation="verify", outcome="token_expired").inc()
            raise TokenExpiredError("Token has expired")

        return AccessClaims(
            user_id=user_id, role=role, issued_at=issued_at, expires_at=expires_at
        )

    # ------------------------------------------------------------------
    # Refresh tokens
    # ------------------------------------------------------------------

    def _store_refresh_token(
        self,
        conn: Connection,
        user_id: UUID,
        user_agent: Optional[str],
        ip_address: Optional[str],
    ) -> tuple[str, datetime]:
        token = new_opaque_token()
        expires_at = self.clock.now() + self.settings.refresh_token_ttl
        insert_refresh_token(
            conn,
            user_id=user_id,
            token_hash=hash_token(token),
            expires_at=expires_at,
            user_agent=user_agent,
            ip_address=ip_address,
        )
        return token, expires_at

    def issue_refresh_token(
        self,
        user_id: UUID,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
        conn: Optional[Connection] = None,
    ) -> tuple[str, datetime]:
        """
        Persist a new refresh token for ``user_id``.

        Args:
            user_id: Owner
            user_agent: Issuing client's User-Agent
            ip_address: Issuing client's address
            conn: Reuse the caller's transaction instead of opening one

        Returns:
            tuple[str, datetime]: The raw token (never stored) and its expiry
        """
        if conn is not None:
            return self._store_refresh_token(conn, user_id, user_agent, ip_address)
        with self.db.transaction() as tx:
            return self._store_refresh_token(tx, user_id, user_agent, ip_address)

    def issue_session(
        self,
        user: UserRecord,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
        conn: Optional[Connection] = None,
    ) -> TokenPair:
        refresh_token, refresh_expires_at = self.issue_refresh_token(
            user.id, user_agent=user_agent, ip_address=ip_address, conn=conn
        )
        access_token, access_expires_at = self.issue_access_token(user.id, user.role)
        token_operations.labels(operation="issue", outcome="success").inc()
        return TokenPair(
            access_token=access_token,
            access_expires_at=access_expires_at,
            refresh_token=refresh_token,
            refresh_expires_at=refresh_expires_at,
        )

    def rotate_refresh_token(
        self,
        refresh_token: str,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
        expected_user_id: Optional[UUID] = None,
    ) -> IssuedSession:
        """
        Exchange a refresh token for a new access and refresh token.

        The old token is revoked and the new one stored in one transaction, with the old
        row locked, so a token can be rotated at most once. When expected_user_id is given
        the token must belong to that user, otherwise it is left untouched.

        Raises:
            InvalidTokenError: Unknown token, token owned by another user, or its user
                no longer exists
            TokenExpiredError: Token is past its expiry
            TokenRevokedError: Token was revoked or already rotated
        """
        try:
            session = self._rotate(refresh_token, user_agent, ip_address, expected_user_id)
        except DomainError as e:
            token_operations.labels(operation="rotate", outcome=e.code).inc()
            logger.info("refresh_token_rotation_rejected", reason=e.code)
            raise

        token_operations.labels(operation="rotate", outcome="success").inc()
        logger.info("refresh_token_rotated", user_id=str(session.user.id))
        return session

    def _rotate(
        self,
        refresh_token: str,
        user_agent: Optional[str],
        ip_address: Optional[str],
        expected_user_id: Optional[UUID] = None,
    ) -> IssuedSession:
        if not refresh_token:
            raise InvalidTokenError("No refresh token provided")

        with self.db.transaction() as conn:
            stored = get_refresh_token(conn, hash_token(refresh_token), for_update=True)
            if stored is None:
                raise InvalidTokenError("Invalid refresh token")
            if stored.is_revoked:
                raise TokenRevokedError("Refresh token has been revoked")
            if stored.is_expired(self.clock.now()):
                raise TokenExpiredError("Refresh token has expired")
            if expected_user_id is not None and stored.user_id != expected_user_id:
                raise InvalidTokenError("Refresh token does not belong to this session")

            user = get_user(conn, stored.user_id)
            if user is None:
                raise InvalidTokenError("User not found")

            if not mark_refresh_token_revoked(conn, stored.id):
                raise TokenRevokedError("Refresh token has been revoked")

            new_refresh, refresh_expires_at = self._store_refresh_token(
                conn, user.id, user_agent or stored.user_agent, ip_address or stored.ip_address
            )

        access_token, access_expires_at = self.issue_access_token(user.id, user.role)
        return IssuedSession(
            user=user,
            tokens=TokenPair(
                access_token=access_token,
                access_expires_at=access_expires_at,
                refresh_token=new_refresh,
                refresh_expires_at=refresh_expires_at,
            ),
        )

    def revoke(self, refresh_token: Optional[str]) -> None:
        """Revoke a refresh token. Unknown or already revoked tokens are ignored."""
        if not refresh_token:
            return
        with self.db.transaction() as conn:
            revoked = revoke_refresh_token(conn, hash_token(refresh_token))
        token_operations.labels(
            operation="revoke", outcome="success" if revoked else "noop"
        ).inc()
        logger.info("refresh_token_revoked", revoked=revoked)
