from decimal import Decimal

import pytest

from mentorly.exceptions import InvalidDurationError, InvalidPriceError
from mentorly.services.pricing_service import calculate_price, duration_options


def test_thirty_euro_hour_breakdown():
    price = calculate_price(Decimal("30"), 60, currency="EUR").rounded()
    assert price.session_price == Decimal("30.00")
    assert price.platform_fee == Decimal("4.50")
    assert price.total == Decimal("34.50")
    assert price.currency == "EUR"


@pytest.mark.parametrize("rate,duration", [
    (Decimal("30"), 30),
    (Decimal("47.50"), 90),
    (Decimal("19.99"), 120),
    ("12.34", 60),
])
def test_total_is_session_price_plus_fifteen_percent(rate, duration):
    price = calculate_price(rate, duration)
    assert abs(price.total - price.session_price * Decimal("1.15")) < Decimal("0.000001")


@pytest.mark.parametrize("rate,duration", [(Decimal("30"), 30), (Decimal("80"), 120)])
def test_free_trial_total_is_zero(rate, duration):
    price = calculate_price(rate, duration, True)
    assert price.total == 0
    assert price.is_free_trial is True
    # the undiscounted amount is still reported for display
    assert price.undiscounted_total > 0


def test_zero_rate_is_always_free_without_trial():
    price = calculate_price(0, 60)
    assert price.total == 0
    assert price.is_always_free is True
    assert price.is_free_trial is False


def test_always_free_and_trial_flags_are_independent():
    price = calculate_price(0, 30, True)
    assert price.total == 0
    assert price.is_always_free is True
    assert price.is_free_trial is True


def test_half_up_rounding_on_odd_amounts():
    # 25/60 * 30 = 12.50, fee 1.875 -> 1.88
    price = calculate_price(Decimal("25"), 30).rounded()
    assert price.platform_fee == Decimal("1.88")
    assert price.total == Decimal("14.38")


def test_explicit_fee_rate():
    price = calculate_price(Decimal("60"), 60, fee_rate=Decimal("0.10"))
    assert price.total == Decimal("66")


@pytest.mark.parametrize("duration", [0, -30])
def test_non_positive_duration_rejected(duration):
    with pytest.raises(InvalidDurationError):
        calculate_price(Decimal("30"), duration)


def test_negative_rate_rejected():
    with pytest.raises(InvalidPriceError):
        calculate_price(Decimal("-1"), 60)


def test_non_numeric_rate_rejected():
    with pytest.raises(InvalidPriceError):
        calculate_price("thirty", 60)


def test_duration_options_mark_one_hour_recommended():
    options = duration_options(Decimal("30"), "EUR")
    assert [option["value"] for option in options] == [30, 60, 90, 120]
    recommended = [option for option in options if option["recommended"]]
    assert len(recommended) == 1
    assert recommended[0]["value"] == 60
    assert recommended[0]["price"] == Decimal("30.00")
    assert options[0]["label"] == "30 min"
