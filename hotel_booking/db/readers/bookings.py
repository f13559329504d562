"""Booking queries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.engine import Connection

from hotel_booking.domain.enums import BookingStatus
from hotel_booking.domain.records import BookingRecord
from hotel_booking.models.bookings import Booking
from hotel_booking.models.rooms import Room


@dataclass(frozen=True)
class BookingFilters:
    """Admin listing filters; every field is optional."""

    status: Optional[BookingStatus] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    user_id: Optional[UUID] = None
    room_id: Optional[UUID] = None


def get_booking(
    conn: Connection, booking_id: UUID, for_update: bool = False
) -> Optional[BookingRecord]:
    """
    Fetch a booking by id.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        booking_id (UUID): Booking id.
        for_update (bool): Lock the row for the rest of the transaction.

    Returns:
        Optional[BookingRecord]: The booking or None if not found.
    """
    stmt = select(Booking).where(Booking.id == booking_id)
    if for_update:
        stmt = stmt.with_for_update()
    row = conn.execute(stmt).mappings().fetchone()
    return BookingRecord.from_row(row) if row else None


def get_active_bookings_for_room(
    conn: Connection,
    room_id: UUID,
    exclude_booking_id: Optional[UUID] = None,
    window: Optional[tuple[date, date]] = None,
) -> list[BookingRecord]:
    """
    Fetch the non-cancelled bookings of a room.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        room_id (UUID): Room id.
        exclude_booking_id (Optional[UUID]): Booking to leave out, used when re-checking
            a booking's own date change.
        window (Optional[tuple[date, date]]): Restrict to bookings whose stay intersects
            the half-open range ``[start, end)``.

    Returns:
        list[BookingRecord]: Matching bookings ordered by check-in.
    """
    stmt = select(Booking).where(
        Booking.room_id == room_id,
        Booking.status != BookingStatus.CANCELLED.value,
    )
    if exclude_booking_id is not None:
        stmt = stmt.where(Booking.id != exclude_booking_id)
    if window is not None:
        start, end = window
        stmt = stmt.where(Booking.check_in < end, Booking.check_out > start)

    rows = conn.execute(stmt.order_by(Booking.check_in)).mappings().fetchall()
    return [BookingRecord.from_row(row) for row in rows]


def list_bookings_for_user(conn: Connection, user_id: UUID) -> list[BookingRecord]:
    """
    Fetch all bookings owned by a user, newest first.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        user_id (UUID): Owner id.

    Returns:
        list[BookingRecord]: The user's bookings.
    """
    rows = (
        conn.execute(
            select(Booking).where(Booking.user_id == user_id).order_by(Booking.created_at.desc())
        )
        .mappings()
        .fetchall()
    )
    return [BookingRecord.from_row(row) for row in rows]


def list_booking_history_for_user(
    conn: Connection, user_id: UUID
) -> list[tuple[BookingRecord, Optional[str]]]:
    """
    Fetch a user's bookings, newest first, each with the category of its room.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        user_id (UUID): Owner id.

    Returns:
        list[tuple[BookingRecord, Optional[str]]]: Bookings paired with the room category,
        or None when the room no longer exists.
    """
    stmt = (
        select(Booking, Room.category.label("room_category"))
        .outerjoin(Room, Room.id == Booking.room_id)
        .where(Booking.user_id == user_id)
        .order_by(Booking.created_at.desc())
    )
    rows = conn.execute(stmt).mappings().fetchall()
    return [(BookingRecord.from_row(row), row["room_category"]) for row in rows]


def _apply_filters(stmt: Any, filters: BookingFilters) -> Any:
    if filters.status is not None:
        stmt = stmt.where(Booking.status == filters.status.value)
    if filters.from_date is not None:
        stmt = stmt.where(Booking.check_in >= filters.from_date)
    if filters.to_date is not None:
        stmt = stmt.where(Booking.check_out <= filters.to_date)
    if filters.user_id is not None:
        stmt = stmt.where(Booking.user_id == filters.user_id)
    if filters.room_id is not None:
        stmt = stmt.where(Booking.room_id == filters.room_id)
    return stmt


def list_bookings(
    conn: Connection, filters: BookingFilters, limit: int, offset: int
) -> tuple[list[BookingRecord], int]:
    """
    Page through bookings for the admin listing.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        filters (BookingFilters): Optional filters.
        limit (int): Page size.
        offset (int): Rows to skip.

    Returns:
        tuple[list[BookingRecord], int]: The page and the total number of matches.
    """
    total = conn.execute(
        _apply_filters(select(func.count()).select_from(Booking), filters)
    ).scalar_one()

    stmt = _apply_filters(select(Booking), filters)
    rows = (
        conn.execute(stmt.order_by(Booking.created_at.desc()).limit(limit).offset(offset))
        .mappings()
        .fetchall()
    )
    return [BookingRecord.from_row(row) for row in rows], int(total)
