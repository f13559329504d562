from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.engine import Connection

from hotel_booking.domain.records import UserRecord
from hotel_booking.models.users import User

_USER_COLUMNS = (User.id, User.name, User.email, User.password_hash, User.role, User.created_at)


def get_user(conn: Connection, user_id: UUID) -> Optional[UserRecord]:
    """
    Fetch a user by id.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        user_id (UUID): User id.

    Returns:
        Optional[UserRecord]: The user or None if not found.
    """
    row = conn.execute(select(*_USER_COLUMNS).where(User.id == user_id)).mappings().fetchone()
    return UserRecord.from_row(row) if row else None


def get_user_by_email(conn: Connection, email: str) -> Optional[UserRecord]:
    """
    Fetch a user by email, case-insensitively.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        email (str): Email address.

    Returns:
        Optional[UserRecord]: The user or None if not found.
    """
    row = (
        conn.execute(select(*_USER_COLUMNS).where(func.lower(User.email) == email.strip().lower()))
        .mappings()
        .fetchone()
    )
    return UserRecord.from_row(row) if row else None
