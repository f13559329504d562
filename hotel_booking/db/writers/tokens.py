import uuid
from datetime import datetime
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import delete, insert, update
from sqlalchemy.engine import Connection

from hotel_booking.models.tokens import PasswordReset, RefreshToken
from hotel_booking.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


def insert_refresh_token(
    conn: Connection,
    user_id: UUID,
    token_hash: str,
    expires_at: datetime,
    user_agent: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> UUID:
    """
    Persist a new, unrevoked refresh token.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        user_id (UUID): Owning user.
        token_hash (str): SHA-256 digest of the opaque token.
        expires_at (datetime): Absolute expiry (UTC).
        user_agent (Optional[str]): Issuing client's User-Agent.
        ip_address (Optional[str]): Issuing client's address.

    Returns:
        UUID: Id of the token row.
    """
    token_id = uuid.uuid4()
    now = utc_now()
    conn.execute(
        insert(RefreshToken).values(
            id=token_id,
            user_id=user_id,
            token_hash=token_hash,
            expires_at=expires_at,
            is_revoked=False,
            user_agent=user_agent,
            ip_address=ip_address,
            created_at=now,
            updated_at=now,
        )
    )
    return token_id


def mark_refresh_token_revoked(conn: Connection, token_id: UUID) -> bool:
    """
    Revoke a token row if it is still live.

    Returns:
        bool: False if the row was already revoked (a concurrent rotation won).
    """
    result = conn.execute(
        update(RefreshToken)
        .where(RefreshToken.id == token_id, RefreshToken.is_revoked.is_(False))
        .values(is_revoked=True, updated_at=utc_now())
    )
    return result.rowcount == 1


def revoke_refresh_token(conn: Connection, token_hash: str) -> bool:
    """
    Revoke a token by digest.

    Returns:
        bool: True if a live token was revoked, False if unknown or already revoked.
    """
    result = conn.execute(
        update(RefreshToken)
        .where(RefreshToken.token_hash == token_hash, RefreshToken.is_revoked.is_(False))
        .values(is_revoked=True, updated_at=utc_now())
    )
    return result.rowcount == 1


def revoke_all_refresh_tokens_for_user(conn: Connection, user_id: UUID) -> int:
    """
    Revoke every live refresh token of a user, e.g. after a password reset.

    Returns:
        int: Number of tokens revoked.
    """
    result = conn.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user_id, RefreshToken.is_revoked.is_(False))
        .values(is_revoked=True, updated_at=utc_now())
    )
    logger.info("refresh_tokens_revoked_for_user", user_id=str(user_id), count=result.rowcount)
    return int(result.rowcount)


def insert_password_reset(
    conn: Connection, user_id: UUID, token_hash: str, expires_at: datetime
) -> UUID:
    reset_id = uuid.uuid4()
    conn.execute(
        insert(PasswordReset).values(
            id=reset_id,
            user_id=user_id,
            token_hash=token_hash,
            expires_at=expires_at,
            created_at=utc_now(),
        )
    )
    return reset_id


def delete_password_resets_for_user(conn: Connection, user_id: UUID) -> None:
    conn.execute(delete(PasswordReset).where(PasswordReset.user_id == user_id))


def delete_password_reset(conn: Connection, reset_id: UUID) -> None:
    conn.execute(delete(PasswordReset).where(PasswordReset.id == reset_id))
