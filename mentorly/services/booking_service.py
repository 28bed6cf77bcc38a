# mentorly/services/booking_service.py
"""
Booking Orchestrator

Creates sessions. Everything the pure resolver and calculator advertise is
re-checked here inside the writing transaction: the slot is resolved again
against the sessions currently on the mentor's calendar, the price is
recomputed from the stored profile, and a free-trial request is checked
against booking history rather than trusted from the client.

The unique index on (mentor_id, scheduled_at) over active statuses is the
final arbiter; losing that race surfaces as ``SlotUnavailableError`` and the
caller is expected to re-query and retry. An adjacent slot is never picked
silently.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, UTC
from decimal import Decimal
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mentorly import models
from mentorly.crud import availability as availability_crud
from mentorly.crud import session as session_crud
from mentorly.crud import user as user_crud
from mentorly.enums import SessionStatus
from mentorly.exceptions import (
    FreeTrialNotEligibleError,
    InvalidDurationError,
    MentorUnavailableError,
    NotFoundError,
    SlotUnavailableError,
    UnauthorizedActorError,
)
from mentorly.services import notification_service, payment_service
from mentorly.services.availability_resolver import (
    BookingSlot,
    DayAvailability,
    WeeklyAvailabilityPattern,
    find_slot,
    group_by_day,
    resolve_slots,
)
from mentorly.services.pricing_service import ALLOWED_DURATIONS, PriceBreakdown, calculate_price
from mentorly.utils.timeutils import resolve_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingRequest:
    mentor_id: int
    mentee_id: int
    date: date
    start_time: time
    duration_minutes: int
    is_free_trial_requested: bool = False
    lesson_plan: Optional[str] = None


# ======================
# READS
# ======================

def get_mentor_profile_or_404(db: Session, mentor_id: int, *, for_update: bool = False) -> models.MentorProfile:
    profile = user_crud.get_mentor_profile(db, mentor_id, for_update=for_update)
    if profile is None:
        raise NotFoundError(
            f"Mentor {mentor_id} not found",
            details={"mentor_id": mentor_id},
        )
    return profile


def load_pattern(db: Session, mentor_id: int) -> WeeklyAvailabilityPattern:
    return WeeklyAvailabilityPattern.from_rules(availability_crud.get_rules_for_mentor(db, mentor_id))


def _utc_window(range_start: date, range_end: date, tz: str) -> Tuple[datetime, datetime]:
    zone = ZoneInfo(tz)
    window_start = datetime.combine(range_start, time.min, tzinfo=zone).astimezone(UTC)
    window_end = datetime.combine(range_end + timedelta(days=1), time.min, tzinfo=zone).astimezone(UTC)
    return window_start, window_end


def _calendar(db: Session, profile: models.MentorProfile, range_start: date, range_end: date):
    window_start, window_end = _utc_window(range_start, range_end, profile.timezone)
    return session_crud.list_blocking_sessions(db, profile.user_id, window_start, window_end)


def list_mentor_slots(
    db: Session,
    mentor_id: int,
    range_start: date,
    range_end: date,
    duration_minutes: int,
    now: Optional[datetime] = None,
) -> List[BookingSlot]:
    profile = get_mentor_profile_or_404(db, mentor_id)
    return resolve_slots(
        load_pattern(db, mentor_id),
        _calendar(db, profile, range_start, range_end),
        range_start,
        range_end,
        duration_minutes,
        now=now,
        tz=profile.timezone,
    )


def list_mentor_days(
    db: Session,
    mentor_id: int,
    range_start: date,
    range_end: date,
    duration_minutes: int,
    now: Optional[datetime] = None,
) -> List[DayAvailability]:
    slots = list_mentor_slots(db, mentor_id, range_start, range_end, duration_minutes, now)
    return group_by_day(slots, range_start, range_end)


def check_slot(
    db: Session,
    mentor_id: int,
    day: date,
    start_time: time,
    duration_minutes: int,
    now: Optional[datetime] = None,
) -> Tuple[bool, Optional[str]]:
    """Re-validate one slot right before payment. Returns (available, reason)."""
    profile = user_crud.get_mentor_profile(db, mentor_id)
    if profile is None:
        return False, "Mentor not found"
    if not profile.is_accepting_students:
        return False, "Mentor is not accepting new students"

    slot = find_slot(
        load_pattern(db, mentor_id),
        _calendar(db, profile, day, day),
        day,
        start_time,
        duration_minutes,
        now=now,
        tz=profile.timezone,
    )
    if slot is None:
        return False, "Outside the mentor's availability or already started"
    if not slot.is_available:
        return False, "Slot is already booked"
    return True, None


def is_first_session_with_mentor(
    db: Session,
    mentor_id: int,
    mentee_id: int,
    exclude_session_id: Optional[int] = None,
) -> bool:
    """Trusted source for free-trial eligibility: booking history in the store."""
    return not session_crud.has_prior_session(db, mentor_id, mentee_id, exclude_session_id)


def effective_hourly_rate(profile: models.MentorProfile) -> Decimal:
    # "free sessions only" mentors behave as a zero hourly rate
    return Decimal(0) if profile.free_sessions_only else profile.hourly_rate


def quote_price(
    profile: models.MentorProfile,
    duration_minutes: int,
    is_free_trial: bool = False,
) -> PriceBreakdown:
    return calculate_price(
        effective_hourly_rate(profile), duration_minutes, is_free_trial, currency=profile.currency
    )


# ======================
# VALIDATION
# ======================

def _validate_duration(profile: models.MentorProfile, duration_minutes: int) -> None:
    if duration_minutes not in ALLOWED_DURATIONS:
        raise InvalidDurationError(
            f"Duration must be one of {', '.join(str(d) for d in ALLOWED_DURATIONS)} minutes",
            details={"duration_minutes": duration_minutes},
        )
    if not profile.min_session_duration <= duration_minutes <= profile.max_session_duration:
        raise InvalidDurationError(
            "Duration is outside the mentor's session length limits",
            details={
                "duration_minutes": duration_minutes,
                "min_session_duration": profile.min_session_duration,
                "max_session_duration": profile.max_session_duration,
            },
        )


def _verify_free_trial(db: Session, profile: models.MentorProfile, request: BookingRequest) -> None:
    details = {"mentor_id": request.mentor_id, "mentee_id": request.mentee_id}
    if not profile.free_trial_available:
        raise FreeTrialNotEligibleError("This mentor does not offer a free trial", details=details)
    if request.duration_minutes > profile.free_trial_duration:
        raise FreeTrialNotEligibleError(
            f"Free trials are limited to {profile.free_trial_duration} minutes",
            details={**details, "duration_minutes": request.duration_minutes},
        )
    if not is_first_session_with_mentor(db, request.mentor_id, request.mentee_id):
        raise FreeTrialNotEligibleError(
            "The free trial only applies to a first session with this mentor",
            details=details,
        )


# ======================
# BOOKING
# ======================

def create_booking(
    db: Session,
    request: BookingRequest,
    now: Optional[datetime] = None,
    *,
    rescheduled_from_id: Optional[int] = None,
) -> Tuple[models.Session, List[models.Notification]]:
    """
    Validate and insert a PENDING_CONFIRMATION session without committing.

    Used by ``book`` and by rescheduling, which needs the insert to share a
    transaction with the cancellation of the old session.
    """
    now = resolve_now(now)
    if request.mentor_id == request.mentee_id:
        raise UnauthorizedActorError(
            "Mentors cannot book sessions with themselves",
            details={"mentor_id": request.mentor_id},
        )

    profile = get_mentor_profile_or_404(db, request.mentor_id, for_update=True)
    if user_crud.get_user(db, request.mentee_id) is None:
        raise NotFoundError(
            f"Mentee {request.mentee_id} not found",
            details={"mentee_id": request.mentee_id},
        )
    if not profile.is_accepting_students:
        raise MentorUnavailableError(
            "Mentor is not accepting new students",
            details={"mentor_id": request.mentor_id},
        )
    _validate_duration(profile, request.duration_minutes)

    slot = find_slot(
        load_pattern(db, request.mentor_id),
        _calendar(db, profile, request.date, request.date),
        request.date,
        request.start_time,
        request.duration_minutes,
        now=now,
        tz=profile.timezone,
    )
    if slot is None or not slot.is_available:
        raise SlotUnavailableError(
            "The requested slot is no longer available",
            details={
                "mentor_id": request.mentor_id,
                "date": request.date.isoformat(),
                "start_time": request.start_time.strftime("%H:%M"),
                "reason": "outside_availability" if slot is None else "already_booked",
            },
        )

    if request.is_free_trial_requested:
        _verify_free_trial(db, profile, request)
    price = quote_price(profile, request.duration_minutes, request.is_free_trial_requested)

    session = models.Session(
        mentor_id=request.mentor_id,
        mentee_id=request.mentee_id,
        scheduled_at=slot.starts_at,
        scheduled_end_at=slot.ends_at,
        duration_minutes=request.duration_minutes,
        timezone=profile.timezone,
        status=SessionStatus.PENDING_CONFIRMATION,
        price=price.session_price,
        platform_fee=price.platform_fee,
        total_amount=price.total,
        currency=price.currency,
        is_free_trial=price.is_free_trial,
        lesson_plan=request.lesson_plan,
        rescheduled_from_id=rescheduled_from_id,
    )
    db.add(session)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        logger.warning(
            "Lost booking race for mentor %s at %s",
            request.mentor_id,
            slot.starts_at.isoformat(),
        )
        raise SlotUnavailableError(
            "The requested slot was just booked by someone else",
            details={
                "mentor_id": request.mentor_id,
                "date": request.date.isoformat(),
                "start_time": request.start_time.strftime("%H:%M"),
                "reason": "already_booked",
            },
        )

    payment_service.hold_payment(db, session)
    notifications = [notification_service.create_notification(
        db,
        recipient_id=session.mentor_id,
        actor_id=session.mentee_id,
        session_id=session.id,
        event_type="session_rescheduled" if rescheduled_from_id else "session_requested",
        message=(
            f"New session request for {slot.date.isoformat()} at "
            f"{slot.start_time.strftime('%H:%M')} ({request.duration_minutes} min)"
        ),
    )]
    return session, notifications


def book(db: Session, request: BookingRequest, now: Optional[datetime] = None) -> models.Session:
    """
    Book a slot for a mentee.

    Raises:
        SlotUnavailableError: Slot outside availability, taken, or lost in a race
        FreeTrialNotEligibleError: Trial requested but not allowed
        MentorUnavailableError: Mentor is not accepting students
        InvalidDurationError: Duration not offered by the mentor
        NotFoundError: Unknown mentor or mentee
    """
    try:
        session, notifications = create_booking(db, request, now)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(session)
    logger.info(
        "Booked session %s (mentor=%s, mentee=%s, total=%s %s, free_trial=%s)",
        session.id,
        session.mentor_id,
        session.mentee_id,
        session.total_amount,
        session.currency,
        session.is_free_trial,
    )
    notification_service.dispatch_emails(db, notifications)
    return session
