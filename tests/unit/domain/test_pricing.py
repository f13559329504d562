"""
Unit tests for stay pricing.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from hotel_booking.domain.pricing import count_nights, quote_stay
from hotel_booking.errors import ValidationError


@pytest.mark.unit
def test_count_nights_excludes_checkout_day() -> None:
    assert count_nights(date(2025, 6, 1), date(2025, 6, 5)) == 4


@pytest.mark.unit
def test_quote_stay_adds_ten_percent_fees() -> None:
    quote = quote_stay(Decimal("100.00"), date(2025, 6, 1), date(2025, 6, 5), Decimal("0.10"))

    assert quote.nights == 4
    assert quote.base_price == Decimal("400.00")
    assert quote.tax_and_fees == Decimal("40.00")
    assert quote.total_price == Decimal("440.00")


@pytest.mark.unit
def test_quote_stay_rounds_half_up_to_cents() -> None:
    quote = quote_stay(Decimal("33.35"), date(2025, 6, 1), date(2025, 6, 2), Decimal("0.15"))

    # 33.35 * 0.15 = 5.0025
    assert quote.tax_and_fees == Decimal("5.00")
    assert quote.total_price == quote.base_price + quote.tax_and_fees


@pytest.mark.unit
def test_quote_stay_total_is_base_plus_fees_for_odd_rates() -> None:
    quote = quote_stay(Decimal("99.99"), date(2025, 6, 1), date(2025, 6, 4), Decimal("0.125"))

    assert quote.base_price == Decimal("299.97")
    assert quote.tax_and_fees == Decimal("37.50")
    assert quote.total_price == Decimal("337.47")


@pytest.mark.unit
def test_quote_stay_zero_fee_rate() -> None:
    quote = quote_stay(Decimal("80.00"), date(2025, 6, 1), date(2025, 6, 3), Decimal("0"))

    assert quote.tax_and_fees == Decimal("0.00")
    assert quote.total_price == Decimal("160.00")


@pytest.mark.unit
@pytest.mark.parametrize(
    "check_in,check_out",
    [
        (date(2025, 6, 5), date(2025, 6, 5)),
        (date(2025, 6, 5), date(2025, 6, 1)),
    ],
)
def test_quote_stay_rejects_empty_range(check_in: date, check_out: date) -> None:
    with pytest.raises(ValidationError):
        quote_stay(Decimal("100.00"), check_in, check_out, Decimal("0.10"))


@pytest.mark.unit
def test_quote_stay_rejects_negative_rate() -> None:
    with pytest.raises(ValidationError):
        quote_stay(Decimal("-1.00"), date(2025, 6, 1), date(2025, 6, 2), Decimal("0.10"))
