from typing import Optional

from sqlalchemy import select
from sqlalchemy.engine import Connection

from hotel_booking.domain.records import PasswordResetRecord, RefreshTokenRecord
from hotel_booking.models.tokens import PasswordReset, RefreshToken


def get_refresh_token(
    conn: Connection, token_hash: str, for_update: bool = False
) -> Optional[RefreshTokenRecord]:
    """
    Look up a stored refresh token by digest.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        token_hash (str): SHA-256 digest of the opaque token.
        for_update (bool): Lock the row so concurrent rotations of the same token
            serialize.

    Returns:
        Optional[RefreshTokenRecord]: The token row or None if unknown.
    """
    stmt = select(
        RefreshToken.id,
        RefreshToken.user_id,
        RefreshToken.token_hash,
        RefreshToken.expires_at,
        RefreshToken.is_revoked,
        RefreshToken.user_agent,
        RefreshToken.ip_address,
    ).where(RefreshToken.token_hash == token_hash)
    if for_update:
        stmt = stmt.with_for_update()

    row = conn.execute(stmt).mappings().fetchone()
    return RefreshTokenRecord.from_row(row) if row else None


def get_password_reset(conn: Connection, token_hash: str) -> Optional[PasswordResetRecord]:
    row = (
        conn.execute(
            select(
                PasswordReset.id,
                PasswordReset.user_id,
                PasswordReset.token_hash,
                PasswordReset.expires_at,
            ).where(PasswordReset.token_hash == token_hash)
        )
        .mappings()
        .fetchone()
    )
    return PasswordResetRecord.from_row(row) if row else None
