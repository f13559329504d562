"""Booking and payment status state machines."""

from __future__ import annotations

from hotel_booking.domain.enums import BookingStatus, PaymentStatus
from hotel_booking.errors import InvalidTransitionError

TERMINAL_STATUSES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.CANCELLED, BookingStatus.COMPLETED}
)

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.COMPLETED}
    ),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

ALLOWED_PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID}),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.REFUNDED: frozenset(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: BookingStatus, target: BookingStatus) -> None:
    """
    Validate a booking status change against the transition table.

    Raises:
        InvalidTransitionError: If ``current -> target`` is not allowed
    """
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Cannot change booking status from {current.value} to {target.value}",
            details={"from": current.value, "to": target.value},
        )


def ensure_payment_transition(current: PaymentStatus, target: PaymentStatus) -> None:
    if target not in ALLOWED_PAYMENT_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Cannot change payment status from {current.value} to {target.value}",
            details={"from": current.value, "to": target.value},
        )
