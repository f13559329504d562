"""SQLAlchemy model for user accounts."""

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, String, Uuid
from sqlalchemy.sql import func

from hotel_booking.models.base import Base


class User(Base):
    """
    ORM model for guests and administrators.

    Deleting a user cascades to its refresh tokens and password resets and sets
    ``bookings.user_id`` to NULL, so booking history survives account removal.
    """

    __tablename__ = "users"
    __table_args__ = (CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String(16), nullable=False, server_default="user")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
