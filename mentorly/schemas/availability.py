from pydantic import BaseModel
from typing import List, Optional
from datetime import date


# ======================
# SLOT RESPONSE MODELS
# ======================

class BookingSlotResponse(BaseModel):
    date: date
    start_time: str  # "HH:MM" in the mentor's timezone
    end_time: str
    duration_minutes: int
    is_available: bool


class DayAvailabilityResponse(BaseModel):
    date: date
    has_availability: bool
    slots: List[BookingSlotResponse]


class SlotCheckResponse(BaseModel):
    available: bool
    reason: Optional[str] = None
