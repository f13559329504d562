"""
Integration tests for booking history, statistics, and the per-user summary.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from hotel_booking.db.gateway import Database
from hotel_booking.db.readers.rooms import get_room
from hotel_booking.db.writers.rooms import insert_room
from hotel_booking.domain.records import Principal, RoomRecord, UserRecord
from hotel_booking.errors import ForbiddenError, NotFoundError
from hotel_booking.services.bookings import BookingRequest, BookingService


def _book(
    service: BookingService, room: RoomRecord, actor: Principal, check_in: date, nights: int
):
    request = BookingRequest(
        room_id=room.id, check_in=check_in, check_out=check_in + timedelta(days=nights)
    )
    return service.create_booking(request, actor)


@pytest.fixture
def deluxe_room(db: Database) -> RoomRecord:
    with db.transaction() as conn:
        room_id = insert_room(conn, "Garden Deluxe", "deluxe", Decimal("80.00"))
        return get_room(conn, room_id)


@pytest.mark.integration
def test_history_stats_skip_cancelled_bookings(
    booking_service: BookingService,
    room: RoomRecord,
    deluxe_room: RoomRecord,
    owner_principal: Principal,
) -> None:
    _book(booking_service, room, owner_principal, date(2025, 6, 1), 2)  # 220.00
    _book(booking_service, room, owner_principal, date(2025, 6, 10), 1)  # 110.00
    _book(booking_service, deluxe_room, owner_principal, date(2025, 6, 1), 1)  # 88.00
    for start in (date(2025, 7, 1), date(2025, 7, 10)):
        booking = _book(booking_service, deluxe_room, owner_principal, start, 3)
        booking_service.cancel_booking(booking.id, owner_principal)

    history = booking_service.booking_history(owner_principal)

    assert len(history.bookings) == 5
    assert history.stats.total_spent == Decimal("418.00")
    assert history.stats.average_per_booking == Decimal("139.33")
    assert history.stats.most_visited_category == "suite"
    assert history.stats.total_bookings == 5


@pytest.mark.integration
def test_history_is_newest_first_and_scoped_to_caller(
    booking_service: BookingService,
    room: RoomRecord,
    owner_principal: Principal,
    other_principal: Principal,
) -> None:
    first = _book(booking_service, room, owner_principal, date(2025, 6, 1), 2)
    second = _book(booking_service, room, owner_principal, date(2025, 6, 10), 2)
    _book(booking_service, room, other_principal, date(2025, 6, 20), 2)

    history = booking_service.booking_history(owner_principal)

    assert [b.id for b in history.bookings] == [second.id, first.id]


@pytest.mark.integration
def test_history_without_bookings(
    booking_service: BookingService, owner_principal: Principal
) -> None:
    history = booking_service.booking_history(owner_principal)

    assert history.bookings == []
    assert history.stats.total_spent == Decimal("0.00")
    assert history.stats.most_visited_category is None


@pytest.mark.integration
def test_summary_buckets_by_today(
    booking_service: BookingService, room: RoomRecord, owner_principal: Principal, clock
) -> None:
    _book(booking_service, room, owner_principal, date(2025, 6, 1), 2)  # past by June 5
    in_stay = _book(booking_service, room, owner_principal, date(2025, 6, 4), 3)
    _book(booking_service, room, owner_principal, date(2025, 6, 20), 2)
    dropped = _book(booking_service, room, owner_principal, date(2025, 7, 1), 2)
    booking_service.cancel_booking(dropped.id, owner_principal)

    clock.advance(timedelta(days=16))  # 2025-06-05
    summary = booking_service.booking_summary(owner_principal)

    assert (summary.upcoming, summary.past, summary.cancelled) == (1, 1, 1)
    # A stay in progress is neither upcoming nor past
    assert summary.total == 3
    assert in_stay.check_in < clock.today() <= in_stay.check_out


@pytest.mark.integration
def test_admin_reads_history_by_email(
    booking_service: BookingService,
    room: RoomRecord,
    owner_user: UserRecord,
    owner_principal: Principal,
    admin_principal: Principal,
) -> None:
    booking = _book(booking_service, room, owner_principal, date(2025, 6, 1), 2)

    items = booking_service.user_booking_history(owner_user.email.upper(), admin_principal)

    assert [b.id for b in items] == [booking.id]


@pytest.mark.integration
def test_history_by_email_unknown_user(
    booking_service: BookingService, admin_principal: Principal
) -> None:
    with pytest.raises(NotFoundError, match="User not found"):
        booking_service.user_booking_history("nobody@example.com", admin_principal)


@pytest.mark.integration
def test_history_by_email_is_admin_only(
    booking_service: BookingService, owner_user: UserRecord, other_principal: Principal
) -> None:
    with pytest.raises(ForbiddenError):
        booking_service.user_booking_history(owner_user.email, other_principal)
