from .availability import BookingSlotResponse, DayAvailabilityResponse, SlotCheckResponse
from .pricing import DurationOption, PriceQuoteResponse
from .session import (
    EligibilityResponse,
    NoShowRequest,
    ReasonRequest,
    RescheduleRequest,
    SessionBookRequest,
    SessionResponse,
)
from .notification import NotificationResponse
