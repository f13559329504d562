"""
Unit tests for booking history statistics.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import uuid4

import pytest

from hotel_booking.domain.enums import BookingStatus, PaymentMethod, PaymentStatus
from hotel_booking.domain.records import BookingRecord
from hotel_booking.services.bookings import BookingSummary, compute_booking_stats

BASE = BookingRecord(
    id=uuid4(),
    booking_code="BK-250520-ABC123",
    user_id=uuid4(),
    room_id=uuid4(),
    check_in=date(2025, 6, 1),
    check_out=date(2025, 6, 3),
    nights=2,
    adults=2,
    children=0,
    nightly_rate=Decimal("100.00"),
    base_price=Decimal("200.00"),
    tax_and_fees=Decimal("20.00"),
    total_price=Decimal("220.00"),
    status=BookingStatus.CONFIRMED,
    payment_status=PaymentStatus.PENDING,
    payment_method=PaymentMethod.CREDIT_CARD,
    first_name="Jane",
    last_name="Doe",
    email="jane@example.com",
    phone=None,
    special_requests=None,
)


def _entry(
    total: str, category: Optional[str], status: BookingStatus = BookingStatus.CONFIRMED
) -> tuple[BookingRecord, Optional[str]]:
    return replace(BASE, id=uuid4(), total_price=Decimal(total), status=status), category


@pytest.mark.unit
def test_empty_history() -> None:
    stats = compute_booking_stats([])

    assert stats.total_spent == Decimal("0.00")
    assert stats.average_per_booking == Decimal("0.00")
    assert stats.most_visited_category is None
    assert stats.total_bookings == 0


@pytest.mark.unit
def test_cancelled_bookings_only_count_towards_total() -> None:
    stats = compute_booking_stats(
        [
            _entry("220.00", "suite"),
            _entry("110.00", "suite"),
            _entry("88.00", "deluxe"),
            _entry("500.00", "deluxe", BookingStatus.CANCELLED),
            _entry("500.00", "deluxe", BookingStatus.CANCELLED),
        ]
    )

    assert stats.total_spent == Decimal("418.00")
    assert stats.average_per_booking == Decimal("139.33")
    assert stats.most_visited_category == "suite"
    assert stats.total_bookings == 5


@pytest.mark.unit
def test_only_cancelled_bookings() -> None:
    stats = compute_booking_stats([_entry("220.00", "suite", BookingStatus.CANCELLED)])

    assert stats.total_spent == Decimal("0.00")
    assert stats.average_per_booking == Decimal("0.00")
    assert stats.most_visited_category is None
    assert stats.total_bookings == 1


@pytest.mark.unit
def test_category_tie_goes_to_first_seen() -> None:
    stats = compute_booking_stats(
        [_entry("10.00", "deluxe"), _entry("10.00", "suite"), _entry("10.00", None)]
    )

    assert stats.most_visited_category == "deluxe"


@pytest.mark.unit
def test_average_rounds_half_up() -> None:
    stats = compute_booking_stats([_entry("0.01", "suite"), _entry("0.02", "suite")])

    assert stats.average_per_booking == Decimal("0.02")


@pytest.mark.unit
def test_summary_total_adds_buckets() -> None:
    assert BookingSummary(upcoming=2, past=3, cancelled=1).total == 6
