"""
Concurrent booking attempts for the same room and dates.

Each thread goes through the real service and store; exactly one may win.
"""

from __future__ import annotations

import threading
from datetime import date

import pytest

from hotel_booking.db.gateway import Database
from hotel_booking.db.readers.bookings import get_active_bookings_for_room
from hotel_booking.domain.records import Principal, RoomRecord
from hotel_booking.errors import DomainError, RoomUnavailableError
from hotel_booking.services.bookings import BookingRequest, BookingService

N_THREADS = 8


@pytest.mark.integration
def test_only_one_concurrent_booking_wins(
    db: Database,
    booking_service: BookingService,
    room: RoomRecord,
    owner_principal: Principal,
) -> None:
    request = BookingRequest(room_id=room.id, check_in=date(2025, 6, 1), check_out=date(2025, 6, 5))
    barrier = threading.Barrier(N_THREADS)
    results: list[object] = []
    lock = threading.Lock()

    def attempt() -> None:
        barrier.wait()
        try:
            outcome: object = booking_service.create_booking(request, owner_principal)
        except DomainError as e:
            outcome = e
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=attempt) for _ in range(N_THREADS)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    failures = [r for r in results if isinstance(r, DomainError)]
    successes = [r for r in results if not isinstance(r, DomainError)]

    assert len(results) == N_THREADS
    assert len(successes) == 1
    assert all(isinstance(f, RoomUnavailableError) for f in failures)

    with db.connect() as conn:
        assert len(get_active_bookings_for_room(conn, room.id)) == 1


@pytest.mark.integration
def test_concurrent_disjoint_bookings_all_succeed(
    db: Database,
    booking_service: BookingService,
    room: RoomRecord,
    owner_principal: Principal,
) -> None:
    barrier = threading.Barrier(4)
    errors: list[DomainError] = []

    def attempt(day: int) -> None:
        barrier.wait()
        try:
            booking_service.create_booking(
                BookingRequest(
                    room_id=room.id, check_in=date(2025, 6, day), check_out=date(2025, 6, day + 2)
                ),
                owner_principal,
            )
        except DomainError as e:
            errors.append(e)

    # 1-3, 3-5, 5-7, 7-9: back to back, no shared nights
    threads = [threading.Thread(target=attempt, args=(day,)) for day in (1, 3, 5, 7)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert errors == []
    with db.connect() as conn:
        assert len(get_active_bookings_for_room(conn, room.id)) == 4
