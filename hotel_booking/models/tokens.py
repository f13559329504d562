"""SQLAlchemy models for refresh tokens and password resets."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Uuid, text
from sqlalchemy.sql import func

from hotel_booking.models.base import Base


class RefreshToken(Base):
    """
    ORM model for long-lived rotating refresh tokens.

    Only the SHA-256 digest of the opaque token is stored. A token is usable while
    ``is_revoked`` is false and ``expires_at`` is in the future; rotation flips
    ``is_revoked`` on the old row in the same transaction that inserts the new one.
    """

    __tablename__ = "refresh_tokens"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token_hash = Column(String(64), nullable=False, unique=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    is_revoked = Column(Boolean, nullable=False, server_default=text("FALSE"))
    user_agent = Column(String, nullable=True)
    ip_address = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class PasswordReset(Base):
    """Single-use password reset token; the row is deleted when consumed or expired."""

    __tablename__ = "password_resets"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token_hash = Column(String(64), nullable=False, unique=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
