from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.engine import Connection

from hotel_booking.domain.records import RoomRecord
from hotel_booking.models.rooms import Room


def get_room(conn: Connection, room_id: UUID, for_update: bool = False) -> Optional[RoomRecord]:
    """
    Fetch a room by id.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        room_id (UUID): Room id.
        for_update (bool): Lock the row until the surrounding transaction ends
            (``SELECT ... FOR UPDATE``). Booking writers take this lock before checking
            availability so concurrent writers for the same room queue up.

    Returns:
        Optional[RoomRecord]: The room or None if it does not exist.
    """
    stmt = select(
        Room.id, Room.title, Room.category, Room.price, Room.is_available
    ).where(Room.id == room_id)
    if for_update:
        stmt = stmt.with_for_update()

    row = conn.execute(stmt).mappings().fetchone()
    return RoomRecord.from_row(row) if row else None
