from pydantic import BaseModel
from decimal import Decimal


class PriceQuoteResponse(BaseModel):
    """Amounts rounded half-up to cents."""
    session_price: Decimal
    platform_fee: Decimal
    total: Decimal
    currency: str
    is_free_trial: bool
    is_always_free: bool


class DurationOption(BaseModel):
    value: int
    label: str
    price: Decimal
    currency: str
    recommended: bool = False
