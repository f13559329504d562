"""
Availability checking for room stays.

Stays are half-open intervals ``[check_in, check_out)``: a guest leaving on the 5th and
another arriving on the 5th do not overlap.
"""

from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy.engine import Connection

from hotel_booking.db.readers.bookings import get_active_bookings_for_room
from hotel_booking.db.readers.rooms import get_room
from hotel_booking.domain.records import RoomRecord
from hotel_booking.errors import NotFoundError, ValidationError

logger = structlog.get_logger(__name__)


def intervals_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Return True iff ``[a_start, a_end)`` and ``[b_start, b_end)`` share a night."""
    return a_start < b_end and b_start < a_end


def validate_stay(check_in: date, check_out: date) -> None:
    """
    Raises:
        ValidationError: If check-out is not strictly after check-in
    """
    if check_in >= check_out:
        raise ValidationError(
            "Check-out date must be after check-in date",
            details={"check_in": check_in.isoformat(), "check_out": check_out.isoformat()},
        )


def load_bookable_room(conn: Connection, room_id: UUID, for_update: bool = False) -> RoomRecord:
    """
    Fetch a room that may take bookings.

    Args:
        conn: Open connection (inside the writer's transaction when ``for_update``)
        room_id: Room id
        for_update: Take the room row lock

    Raises:
        NotFoundError: If the room does not exist or is switched off by the operator
    """
    room = get_room(conn, room_id, for_update=for_update)
    if room is None:
        raise NotFoundError("Room not found", details={"room_id": str(room_id)})
    if not room.is_available:
        raise NotFoundError(
            "Room is not available for booking", details={"room_id": str(room_id)}
        )
    return room


def is_room_free(
    conn: Connection,
    room_id: UUID,
    check_in: date,
    check_out: date,
    exclude_booking_id: Optional[UUID] = None,
) -> bool:
    """
    Check the calendar of a room without looking at its availability flag.

    Returns:
        bool: True if no non-cancelled booking overlaps ``[check_in, check_out)``
    """
    candidates = get_active_bookings_for_room(
        conn, room_id, exclude_booking_id=exclude_booking_id, window=(check_in, check_out)
    )
    clashes = [
        b for b in candidates if intervals_overlap(b.check_in, b.check_out, check_in, check_out)
    ]
    if clashes:
        logger.debug(
            "room_dates_taken",
            room_id=str(room_id),
            check_in=check_in.isoformat(),
            check_out=check_out.isoformat(),
            clashing_bookings=[b.booking_code for b in clashes],
        )
    return not clashes


def is_available(
    conn: Connection,
    room_id: UUID,
    check_in: date,
    check_out: date,
    exclude_booking_id: Optional[UUID] = None,
) -> bool:
    """
    Decide whether a room can be booked for a stay.

    Pure read. Writers must call this on the same connection and inside the same
    transaction as their subsequent insert/update, after locking the room.

    Args:
        conn: Open connection
        room_id: Room id
        check_in: Arrival date
        check_out: Departure date (exclusive)
        exclude_booking_id: Ignore this booking, for re-checking its own date change

    Returns:
        bool: True if the stay does not overlap any non-cancelled booking

    Raises:
        ValidationError: If the range is empty
        NotFoundError: If the room is missing or flagged unavailable
    """
    validate_stay(check_in, check_out)
    load_bookable_room(conn, room_id)
    return is_room_free(conn, room_id, check_in, check_out, exclude_booking_id)
