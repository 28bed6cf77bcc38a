# mentorly/api/mentors.py
from datetime import date, time, timedelta
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from mentorly.database import get_db
from mentorly.schemas import (
    BookingSlotResponse,
    DayAvailabilityResponse,
    DurationOption,
    PriceQuoteResponse,
    SlotCheckResponse,
)
from mentorly.services import booking_service, pricing_service

router = APIRouter(prefix="/mentors", tags=["Mentors"])


# ======================
# AVAILABILITY
# ======================
@router.get("/{mentor_id}/available-slots", response_model=List[DayAvailabilityResponse])
def get_available_slots(
    mentor_id: int,
    start: date = Query(..., alias="date"),
    duration: int = Query(60, gt=0),
    days: int = Query(7, ge=1, le=31),
    db: Session = Depends(get_db)
):
    """Week view: every day in the range, with or without slots."""
    end = start + timedelta(days=days - 1)
    result = booking_service.list_mentor_days(db, mentor_id, start, end, duration)
    return [
        {
            "date": day.date,
            "has_availability": day.has_availability,
            "slots": [slot.to_dict() for slot in day.slots],
        }
        for day in result
    ]


@router.get("/{mentor_id}/available-slots/day", response_model=List[BookingSlotResponse])
def get_day_slots(
    mentor_id: int,
    day: date = Query(..., alias="date"),
    duration: int = Query(60, gt=0),
    db: Session = Depends(get_db)
):
    slots = booking_service.list_mentor_slots(db, mentor_id, day, day, duration)
    return [slot.to_dict() for slot in slots]


@router.get("/{mentor_id}/check-slot", response_model=SlotCheckResponse)
def check_slot(
    mentor_id: int,
    day: date = Query(..., alias="date"),
    start_time: time = Query(...),
    duration: int = Query(60, gt=0),
    db: Session = Depends(get_db)
):
    available, reason = booking_service.check_slot(db, mentor_id, day, start_time, duration)
    return {"available": available, "reason": reason}


# ======================
# PRICING
# ======================
@router.get("/{mentor_id}/price-quote", response_model=PriceQuoteResponse)
def get_price_quote(
    mentor_id: int,
    duration: int = Query(60, gt=0),
    free_trial: bool = Query(False),
    db: Session = Depends(get_db)
):
    """Display quote only; eligibility for the trial is checked when booking."""
    profile = booking_service.get_mentor_profile_or_404(db, mentor_id)
    breakdown = booking_service.quote_price(profile, duration, free_trial).rounded()
    return {
        "session_price": breakdown.session_price,
        "platform_fee": breakdown.platform_fee,
        "total": breakdown.total,
        "currency": breakdown.currency,
        "is_free_trial": breakdown.is_free_trial,
        "is_always_free": breakdown.is_always_free,
    }


@router.get("/{mentor_id}/durations", response_model=List[DurationOption])
def get_duration_options(mentor_id: int, db: Session = Depends(get_db)):
    profile = booking_service.get_mentor_profile_or_404(db, mentor_id)
    return [
        option for option in pricing_service.duration_options(
            booking_service.effective_hourly_rate(profile), profile.currency
        )
        if profile.min_session_duration <= option["value"] <= profile.max_session_duration
    ]
