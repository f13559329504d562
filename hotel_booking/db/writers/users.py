import uuid
from uuid import UUID

import structlog
from sqlalchemy import delete, insert, update
from sqlalchemy.engine import Connection

from hotel_booking.domain.enums import Role
from hotel_booking.models.users import User
from hotel_booking.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


def insert_user(
    conn: Connection, name: str, email: str, password_hash: str, role: Role = Role.USER
) -> UUID:
    """
    Insert a user account.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        name (str): Display name.
        email (str): Login email; stored lower-cased.
        password_hash (str): bcrypt hash, never the plain password.
        role (Role): Account role.

    Returns:
        UUID: Id of the new user.
    """
    user_id = uuid.uuid4()
    now = utc_now()
    conn.execute(
        insert(User).values(
            id=user_id,
            name=name,
            email=email.strip().lower(),
            password_hash=password_hash,
            role=role.value,
            created_at=now,
            updated_at=now,
        )
    )
    return user_id


def update_user_password(conn: Connection, user_id: UUID, password_hash: str) -> None:
    conn.execute(
        update(User)
        .where(User.id == user_id)
        .values(password_hash=password_hash, updated_at=utc_now())
    )


def update_user_role(conn: Connection, user_id: UUID, role: Role) -> None:
    conn.execute(
        update(User).where(User.id == user_id).values(role=role.value, updated_at=utc_now())
    )
    logger.info("user_role_updated", user_id=str(user_id), role=role.value)


def delete_user(conn: Connection, user_id: UUID) -> None:
    """
    Permanently delete a user.

    Refresh tokens and password resets are removed by cascade; bookings keep their
    history with ``user_id`` set to NULL.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        user_id (UUID): User id.
    """
    conn.execute(delete(User).where(User.id == user_id))
