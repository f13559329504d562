import uuid
from decimal import Decimal
from uuid import UUID

from sqlalchemy import insert, update
from sqlalchemy.engine import Connection

from hotel_booking.models.rooms import Room
from hotel_booking.utils.datetime import utc_now


def insert_room(
    conn: Connection,
    title: str,
    category: str,
    price: Decimal,
    is_available: bool = True,
) -> UUID:
    """
    Insert a room and return its id.

    Room catalog management lives outside the reservation core; this writer exists for
    seeding and tests.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        title (str): Display title.
        category (str): Room category slug.
        price (Decimal): Nightly price.
        is_available (bool): Operator availability flag.

    Returns:
        UUID: Id of the new room.
    """
    room_id = uuid.uuid4()
    now = utc_now()
    conn.execute(
        insert(Room).values(
            id=room_id,
            title=title,
            category=category,
            price=price,
            is_available=is_available,
            created_at=now,
            updated_at=now,
        )
    )
    return room_id


def set_room_availability(conn: Connection, room_id: UUID, is_available: bool) -> bool:
    """
    Flip the operator kill switch for a room.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        room_id (UUID): Room id.
        is_available (bool): New flag value.

    Returns:
        bool: True if the room exists.
    """
    result = conn.execute(
        update(Room)
        .where(Room.id == room_id)
        .values(is_available=is_available, updated_at=utc_now())
    )
    return result.rowcount == 1
