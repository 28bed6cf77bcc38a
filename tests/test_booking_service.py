from datetime import date, datetime, time, timedelta, UTC
from decimal import Decimal

import pytest

from mentorly.crud import session as session_crud
from mentorly.enums import SessionStatus
from mentorly.exceptions import (
    FreeTrialNotEligibleError,
    InvalidDurationError,
    MentorUnavailableError,
    NotFoundError,
    ReasonRequiredError,
    SlotUnavailableError,
    UnauthorizedActorError,
)
from mentorly.models import AvailabilityRule, MentorProfile, PaymentTransaction, Notification, TransactionType
from mentorly.services import booking_service
from mentorly.services.booking_service import BookingRequest
from mentorly.utils.timeutils import ensure_utc

from helpers import NOW

DAY = date(2030, 1, 10)


def _request(mentor, mentee, start=time(14, 0), duration=60, **kwargs):
    return BookingRequest(
        mentor_id=mentor.id,
        mentee_id=mentee.id,
        date=DAY,
        start_time=start,
        duration_minutes=duration,
        **kwargs,
    )


def _profile(db, mentor):
    return db.query(MentorProfile).filter(MentorProfile.user_id == mentor.id).one()


def test_book_creates_pending_session_with_price(db, mentor, mentee):
    session = booking_service.book(db, _request(mentor, mentee), NOW)

    assert session.status == SessionStatus.PENDING_CONFIRMATION
    assert session.mentor_confirmed is False
    assert session.duration_minutes == 60
    assert session.scheduled_end_at - session.scheduled_at == timedelta(hours=1)
    assert session.price == Decimal("30")
    assert session.platform_fee == Decimal("4.5")
    assert session.total_amount == Decimal("34.5")
    assert session.currency == "EUR"


def test_book_emits_hold_and_notifies_mentor(db, mentor, mentee):
    session = booking_service.book(db, _request(mentor, mentee), NOW)

    holds = db.query(PaymentTransaction).filter(PaymentTransaction.session_id == session.id).all()
    assert [(tx.type, tx.amount) for tx in holds] == [(TransactionType.HOLD, Decimal("34.50"))]

    notification = db.query(Notification).one()
    assert notification.recipient_id == mentor.id
    assert notification.event_type == "session_requested"


def test_booked_slot_is_no_longer_available(db, mentor, mentee, other_mentee):
    booking_service.book(db, _request(mentor, mentee), NOW)

    available, reason = booking_service.check_slot(db, mentor.id, DAY, time(14, 30), 60, NOW)
    assert available is False
    assert reason == "Slot is already booked"

    with pytest.raises(SlotUnavailableError):
        booking_service.book(db, _request(mentor, other_mentee, start=time(14, 30)), NOW)


def test_adjacent_slot_still_bookable(db, mentor, mentee, other_mentee):
    booking_service.book(db, _request(mentor, mentee), NOW)
    session = booking_service.book(db, _request(mentor, other_mentee, start=time(15, 0)), NOW)
    assert session.id is not None


def test_outside_availability_is_unavailable(db, mentor, mentee):
    with pytest.raises(SlotUnavailableError) as excinfo:
        booking_service.book(db, _request(mentor, mentee, start=time(16, 30)), NOW)
    assert excinfo.value.details["reason"] == "outside_availability"


def test_lost_race_surfaces_as_slot_unavailable(db, mentor, mentee, other_mentee, monkeypatch):
    booking_service.book(db, _request(mentor, mentee), NOW)

    # Simulate a stale read: the resolver sees an empty calendar.
    monkeypatch.setattr(session_crud, "list_blocking_sessions", lambda *args, **kwargs: [])
    with pytest.raises(SlotUnavailableError):
        booking_service.book(db, _request(mentor, other_mentee), NOW)

    assert db.query(PaymentTransaction).count() == 1


def test_rejected_session_frees_the_slot(db, mentor, mentee, other_mentee):
    first = booking_service.book(db, _request(mentor, mentee), NOW)
    first.status = SessionStatus.REJECTED_BY_MENTOR
    db.commit()

    second = booking_service.book(db, _request(mentor, other_mentee), NOW)
    assert second.scheduled_at == first.scheduled_at


def test_free_trial_first_session(db, mentor, mentee):
    session = booking_service.book(db, _request(mentor, mentee, duration=30, is_free_trial_requested=True), NOW)
    assert session.is_free_trial is True
    assert session.total_amount == 0
    assert db.query(PaymentTransaction).count() == 0


def test_free_trial_only_once_per_mentor(db, mentor, mentee):
    booking_service.book(db, _request(mentor, mentee, duration=30, is_free_trial_requested=True), NOW)
    with pytest.raises(FreeTrialNotEligibleError):
        booking_service.book(
            db,
            _request(mentor, mentee, start=time(10, 0), duration=30, is_free_trial_requested=True),
            NOW,
        )


def test_free_trial_longer_than_offered_is_refused(db, mentor, mentee):
    with pytest.raises(FreeTrialNotEligibleError):
        booking_service.book(db, _request(mentor, mentee, duration=60, is_free_trial_requested=True), NOW)


def test_free_trial_not_offered(db, mentor, mentee):
    _profile(db, mentor).free_trial_available = False
    db.commit()
    with pytest.raises(FreeTrialNotEligibleError):
        booking_service.book(db, _request(mentor, mentee, duration=30, is_free_trial_requested=True), NOW)


def test_free_sessions_only_mentor_is_free_without_trial(db, mentor, mentee):
    _profile(db, mentor).free_sessions_only = True
    db.commit()

    session = booking_service.book(db, _request(mentor, mentee), NOW)
    assert session.total_amount == 0
    assert session.is_free_trial is False

    again = booking_service.book(db, _request(mentor, mentee, start=time(10, 0)), NOW)
    assert again.total_amount == 0


def test_free_sessions_only_with_trial_request(db, mentor, mentee):
    _profile(db, mentor).free_sessions_only = True
    db.commit()
    session = booking_service.book(db, _request(mentor, mentee, duration=30, is_free_trial_requested=True), NOW)
    assert session.total_amount == 0
    assert session.is_free_trial is True


def test_is_first_session_with_mentor(db, mentor, mentee):
    assert booking_service.is_first_session_with_mentor(db, mentor.id, mentee.id) is True
    booking_service.book(db, _request(mentor, mentee), NOW)
    assert booking_service.is_first_session_with_mentor(db, mentor.id, mentee.id) is False


def test_mentor_not_accepting_students(db, mentor, mentee):
    _profile(db, mentor).is_accepting_students = False
    db.commit()
    with pytest.raises(MentorUnavailableError):
        booking_service.book(db, _request(mentor, mentee), NOW)
    assert booking_service.check_slot(db, mentor.id, DAY, time(14, 0), 60, NOW) == (
        False,
        "Mentor is not accepting new students",
    )


@pytest.mark.parametrize("duration", [45, 150])
def test_unsupported_duration(db, mentor, mentee, duration):
    with pytest.raises(InvalidDurationError):
        booking_service.book(db, _request(mentor, mentee, duration=duration), NOW)


def test_duration_outside_mentor_limits(db, mentor, mentee):
    _profile(db, mentor).max_session_duration = 60
    db.commit()
    with pytest.raises(InvalidDurationError):
        booking_service.book(db, _request(mentor, mentee, duration=90), NOW)


def test_cannot_book_self(db, mentor):
    with pytest.raises(UnauthorizedActorError):
        booking_service.book(db, _request(mentor, mentor), NOW)


def test_unknown_mentor(db, mentee):
    request = BookingRequest(
        mentor_id=999, mentee_id=mentee.id, date=DAY, start_time=time(14, 0), duration_minutes=60
    )
    with pytest.raises(NotFoundError):
        booking_service.book(db, request, NOW)


def test_past_slot_cannot_be_booked(db, mentor, mentee):
    now = datetime(2030, 1, 10, 14, 30, tzinfo=UTC)
    with pytest.raises(SlotUnavailableError):
        booking_service.book(db, _request(mentor, mentee), now)


def test_list_mentor_days_marks_booked_slot(db, mentor, mentee):
    booking_service.book(db, _request(mentor, mentee), NOW)
    days = booking_service.list_mentor_days(db, mentor.id, DAY, DAY + timedelta(days=1), 60, NOW)
    assert len(days) == 2
    taken = [slot.start_time for slot in days[0].slots if not slot.is_available]
    assert taken == [time(13, 30), time(14, 0), time(14, 30)]
    assert all(slot.is_available for slot in days[1].slots)


def test_booking_across_fall_back_stores_real_length(db, mentor, mentee):
    _profile(db, mentor).timezone = "Europe/Berlin"
    db.add(AvailabilityRule(mentor_id=mentor.id, day_of_week=0, start_time=time(1, 0), end_time=time(4, 0)))
    db.commit()

    request = BookingRequest(
        mentor_id=mentor.id,
        mentee_id=mentee.id,
        date=date(2030, 10, 27),
        start_time=time(2, 0),
        duration_minutes=60,
    )
    session = booking_service.book(db, request, NOW)

    assert ensure_utc(session.scheduled_at) == datetime(2030, 10, 27, 0, 0, tzinfo=UTC)
    assert ensure_utc(session.scheduled_end_at) == datetime(2030, 10, 27, 1, 0, tzinfo=UTC)


def test_missing_local_hour_cannot_be_booked(db, mentor, mentee):
    _profile(db, mentor).timezone = "Europe/Berlin"
    db.add(AvailabilityRule(mentor_id=mentor.id, day_of_week=0, start_time=time(1, 0), end_time=time(4, 0)))
    db.commit()

    request = BookingRequest(
        mentor_id=mentor.id,
        mentee_id=mentee.id,
        date=date(2030, 3, 31),
        start_time=time(2, 0),
        duration_minutes=60,
    )
    with pytest.raises(SlotUnavailableError):
        booking_service.book(db, request, NOW)


@pytest.mark.parametrize("error_class", [FreeTrialNotEligibleError, ReasonRequiredError])
def test_unprocessable_errors_map_to_422(error_class):
    error = error_class("Not allowed", details={"session_id": 1})
    assert error.status_code == 422
    assert error.to_http_exception().status_code == 422
