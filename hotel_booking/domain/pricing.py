"""
Stay pricing.

This is the only place nights and totals are derived. The lifecycle service calls it at
creation and when dates change; nothing downstream recomputes them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from hotel_booking.errors import ValidationError

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class StayQuote:
    nights: int
    base_price: Decimal
    tax_and_fees: Decimal
    total_price: Decimal


def count_nights(check_in: date, check_out: date) -> int:
    """Nights in the half-open stay ``[check_in, check_out)``."""
    return (check_out - check_in).days


def quote_stay(
    nightly_rate: Decimal, check_in: date, check_out: date, fee_rate: Decimal
) -> StayQuote:
    """
    Price a stay.

    Args:
        nightly_rate: Room price per night
        check_in: First night
        check_out: Departure day (not charged)
        fee_rate: Tax and fees as a fraction of the base price

    Returns:
        StayQuote with ``total_price == base_price + tax_and_fees``

    Raises:
        ValidationError: If the range is empty or the rate is negative
    """
    nights = count_nights(check_in, check_out)
    if nights < 1:
        raise ValidationError("Check-out date must be after check-in date")
    if nightly_rate < 0 or fee_rate < 0:
        raise ValidationError("Prices must not be negative")

    base = (nightly_rate * nights).quantize(CENTS, rounding=ROUND_HALF_UP)
    fees = (base * fee_rate).quantize(CENTS, rounding=ROUND_HALF_UP)
    return StayQuote(nights=nights, base_price=base, tax_and_fees=fees, total_price=base + fees)
