import uuid
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import insert, update
from sqlalchemy.engine import Connection

from hotel_booking.domain.enums import BookingStatus, PaymentStatus
from hotel_booking.models.bookings import Booking
from hotel_booking.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


def insert_booking(conn: Connection, data: dict[str, Any]) -> UUID:
    """
    Insert a booking row.

    The caller is responsible for having locked the room and checked availability in
    the same transaction.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        data (dict[str, Any]): Column values; ``id`` and timestamps are filled in.

    Returns:
        UUID: Id of the new booking.
    """
    booking_id = uuid.uuid4()
    now = utc_now()
    conn.execute(
        insert(Booking).values(
            {
                **data,
                "id": booking_id,
                "created_at": now,
                "updated_at": now,
            }
        )
    )
    logger.debug("booking_row_inserted", booking_id=str(booking_id))
    return booking_id


def update_booking(conn: Connection, booking_id: UUID, patch: dict[str, Any]) -> None:
    """
    Apply a partial update to a booking.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        booking_id (UUID): Booking id.
        patch (dict[str, Any]): Columns to change (only non-None values are expected).
    """
    values = {**patch, "updated_at": utc_now()}
    conn.execute(update(Booking).where(Booking.id == booking_id).values(**values))


def update_booking_status(
    conn: Connection,
    booking_id: UUID,
    expected: BookingStatus,
    new_status: BookingStatus,
) -> bool:
    """
    Compare-and-set the status of a booking in a single statement.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        booking_id (UUID): Booking id.
        expected (BookingStatus): Status the caller validated the transition from.
        new_status (BookingStatus): Target status.

    Returns:
        bool: False if the booking's status changed since it was read.
    """
    result = conn.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == expected.value)
        .values(status=new_status.value, updated_at=utc_now())
    )
    return result.rowcount == 1


def update_payment_status(
    conn: Connection,
    booking_id: UUID,
    expected: PaymentStatus,
    new_status: PaymentStatus,
) -> bool:
    """Compare-and-set variant of :func:`update_booking_status` for payment status."""
    result = conn.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.payment_status == expected.value)
        .values(payment_status=new_status.value, updated_at=utc_now())
    )
    return result.rowcount == 1
