# mentorly/services/pricing_service.py
"""
Pricing Calculator

Derives session price, platform fee and the amount due from an hourly rate,
a duration and the free-trial flag. Pure arithmetic on ``Decimal``: full
precision is kept on the breakdown and rounding to cents (half-up) only
happens for display or when a payment intent is emitted.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Union

from mentorly.config import settings
from mentorly.exceptions import InvalidDurationError, InvalidPriceError
from mentorly.services.refund_policy import round_money

ALLOWED_DURATIONS = (30, 60, 90, 120)
RECOMMENDED_DURATION = 60

Number = Union[Decimal, int, float, str]


@dataclass(frozen=True)
class PriceBreakdown:
    session_price: Decimal
    platform_fee: Decimal
    total: Decimal
    currency: str
    is_free_trial: bool = False
    is_always_free: bool = False

    @property
    def undiscounted_total(self) -> Decimal:
        """What the booking would cost without any free path applied."""
        return self.session_price + self.platform_fee

    @property
    def is_free(self) -> bool:
        return self.total == 0

    def rounded(self) -> "PriceBreakdown":
        return PriceBreakdown(
            session_price=round_money(self.session_price),
            platform_fee=round_money(self.platform_fee),
            total=round_money(self.total),
            currency=self.currency,
            is_free_trial=self.is_free_trial,
            is_always_free=self.is_always_free,
        )


def _to_decimal(value: Number, field: str) -> Decimal:
    try:
        # str() first so floats like 0.1 keep their printed value
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidPriceError(
            f"{field} must be a number",
            details={field: value},
        )


def calculate_price(
    hourly_rate: Number,
    duration_minutes: int,
    is_free_trial: bool = False,
    *,
    currency: Optional[str] = None,
    fee_rate: Optional[Number] = None,
) -> PriceBreakdown:
    """
    Compute the price breakdown for a candidate booking.

    Args:
        hourly_rate: Mentor's rate per hour. 0 means the mentor is always free.
        duration_minutes: Session length in minutes
        is_free_trial: Trial flag, already verified by the caller
        currency: ISO code of the mentor's currency
        fee_rate: Platform fee rate (defaults to PLATFORM_FEE_RATE)

    Returns:
        PriceBreakdown at full precision

    Raises:
        InvalidDurationError: If duration_minutes is not positive
        InvalidPriceError: If hourly_rate is negative or not a number
    """
    if duration_minutes is None or duration_minutes <= 0:
        raise InvalidDurationError(
            "Session duration must be positive",
            details={"duration_minutes": duration_minutes},
        )

    rate = _to_decimal(hourly_rate, "hourly_rate")
    if rate < 0:
        raise InvalidPriceError(
            "Hourly rate cannot be negative",
            details={"hourly_rate": str(rate)},
        )
    fee = _to_decimal(settings.PLATFORM_FEE_RATE if fee_rate is None else fee_rate, "fee_rate")

    session_price = rate * Decimal(duration_minutes) / Decimal(60)
    platform_fee = session_price * fee
    always_free = rate == 0
    total = Decimal(0) if (is_free_trial or always_free) else session_price + platform_fee

    return PriceBreakdown(
        session_price=session_price,
        platform_fee=platform_fee,
        total=total,
        currency=currency or settings.DEFAULT_CURRENCY,
        is_free_trial=bool(is_free_trial),
        is_always_free=always_free,
    )


def duration_options(hourly_rate: Number, currency: Optional[str] = None) -> List[Dict[str, Any]]:
    """Bookable durations with their session price (before fees)."""
    options = []
    for duration in ALLOWED_DURATIONS:
        breakdown = calculate_price(hourly_rate, duration, currency=currency)
        options.append({
            "value": duration,
            "label": "1 hour" if duration == 60 else f"{duration} min",
            "price": round_money(breakdown.session_price),
            "currency": breakdown.currency,
            "recommended": duration == RECOMMENDED_DURATION,
        })
    return options
