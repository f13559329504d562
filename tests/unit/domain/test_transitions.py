"""
Unit tests for the booking and payment state machines.
"""

from __future__ import annotations

import pytest

from hotel_booking.domain.enums import BookingStatus, PaymentStatus
from hotel_booking.domain.transitions import (
    TERMINAL_STATUSES,
    can_transition,
    ensure_payment_transition,
    ensure_transition,
)
from hotel_booking.errors import InvalidTransitionError


@pytest.mark.unit
@pytest.mark.parametrize(
    "current,target",
    [
        (BookingStatus.PENDING, BookingStatus.CONFIRMED),
        (BookingStatus.PENDING, BookingStatus.CANCELLED),
        (BookingStatus.PENDING, BookingStatus.COMPLETED),
        (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
        (BookingStatus.CONFIRMED, BookingStatus.COMPLETED),
    ],
)
def test_allowed_transitions(current: BookingStatus, target: BookingStatus) -> None:
    assert can_transition(current, target)
    ensure_transition(current, target)


@pytest.mark.unit
@pytest.mark.parametrize("terminal", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
@pytest.mark.parametrize("target", list(BookingStatus))
def test_terminal_states_have_no_exits(terminal: BookingStatus, target: BookingStatus) -> None:
    with pytest.raises(InvalidTransitionError):
        ensure_transition(terminal, target)


@pytest.mark.unit
def test_cancelled_to_confirmed_is_rejected_with_details() -> None:
    with pytest.raises(InvalidTransitionError) as exc_info:
        ensure_transition(BookingStatus.CANCELLED, BookingStatus.CONFIRMED)

    assert exc_info.value.details == {"from": "cancelled", "to": "confirmed"}
    assert exc_info.value.http_status == 409


@pytest.mark.unit
def test_confirmed_cannot_go_back_to_pending() -> None:
    assert not can_transition(BookingStatus.CONFIRMED, BookingStatus.PENDING)


@pytest.mark.unit
def test_payment_status_moves_forward_only() -> None:
    ensure_payment_transition(PaymentStatus.PENDING, PaymentStatus.PAID)
    ensure_payment_transition(PaymentStatus.PAID, PaymentStatus.REFUNDED)

    with pytest.raises(InvalidTransitionError):
        ensure_payment_transition(PaymentStatus.PENDING, PaymentStatus.REFUNDED)
    with pytest.raises(InvalidTransitionError):
        ensure_payment_transition(PaymentStatus.REFUNDED, PaymentStatus.PAID)
