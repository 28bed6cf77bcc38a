# mentorly/api/sessions.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from mentorly import models
from mentorly.crud import session as session_crud
from mentorly.database import get_db
from mentorly.enums import SessionStatus
from mentorly.schemas import (
    EligibilityResponse,
    NoShowRequest,
    ReasonRequest,
    RescheduleRequest,
    SessionBookRequest,
    SessionResponse,
)
from mentorly.services import booking_service, eligibility, session_service
from mentorly.services.booking_service import BookingRequest
from mentorly.services.session_state_machine import actor_role
from mentorly.utils.security import get_current_user
from mentorly.utils.timeutils import utcnow

router = APIRouter(prefix="/sessions", tags=["Sessions"])


# ======================
# BOOK / READ
# ======================
@router.post("", response_model=SessionResponse, status_code=201)
def book_session(
    payload: SessionBookRequest,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    request = BookingRequest(
        mentor_id=payload.mentor_id,
        mentee_id=current_user.id,
        date=payload.date,
        start_time=payload.start_time,
        duration_minutes=payload.duration_minutes,
        is_free_trial_requested=payload.is_free_trial,
        lesson_plan=payload.lesson_plan,
    )
    return booking_service.book(db, request)


@router.get("/my", response_model=List[SessionResponse])
def get_my_sessions(
    status: Optional[SessionStatus] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Sessions where the caller is mentor or mentee, newest first."""
    return session_crud.list_sessions_for_user(db, current_user.id, status, limit, offset)


@router.get("/{session_id}", response_model=SessionResponse)
def get_session(
    session_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    session = session_service.get_session_or_404(db, session_id)
    actor_role(session, current_user.id)
    return session


@router.get("/{session_id}/eligibility", response_model=EligibilityResponse)
def get_session_eligibility(
    session_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Recomputed on every request; the countdown is the client's poll loop."""
    session = session_service.get_session_or_404(db, session_id)
    role = actor_role(session, current_user.id)
    now = utcnow()
    cancellable = eligibility.can_cancel(session, now)
    return {
        "session_id": session.id,
        "status": session.status,
        "can_join": eligibility.can_join(session, now, role),
        "can_cancel": cancellable,
        "refund_tier": eligibility.refund_tier(session, now) if cancellable else None,
        "hours_until_start": round(eligibility.hours_until(session.scheduled_at, now), 2),
        "urgency": eligibility.countdown_urgency(session.scheduled_at, now),
        "time_remaining": eligibility.time_remaining_label(session.scheduled_at, now),
    }


# ======================
# TRANSITIONS
# ======================
@router.patch("/{session_id}/confirm", response_model=SessionResponse)
def confirm_session(
    session_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return session_service.confirm(db, session_id, current_user.id)


@router.patch("/{session_id}/reject", response_model=SessionResponse)
def reject_session(
    session_id: int,
    payload: ReasonRequest,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return session_service.reject(db, session_id, current_user.id, payload.reason)


@router.post("/{session_id}/cancel", response_model=SessionResponse)
def cancel_session(
    session_id: int,
    payload: ReasonRequest,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return session_service.cancel(db, session_id, current_user.id, payload.reason)


@router.post("/{session_id}/join", response_model=SessionResponse)
def join_session(
    session_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return session_service.join(db, session_id, current_user.id)


@router.post("/{session_id}/no-show", response_model=SessionResponse)
def report_no_show(
    session_id: int,
    payload: NoShowRequest,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Attendance signal; only a participant may report the other party absent."""
    return session_service.report_no_show(db, session_id, current_user.id, payload.absent_party)


@router.patch("/{session_id}/complete", response_model=SessionResponse)
def complete_session(
    session_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return session_service.complete(db, session_id, current_user.id)


@router.patch("/{session_id}/reschedule", response_model=SessionResponse)
def reschedule_session(
    session_id: int,
    payload: RescheduleRequest,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return session_service.reschedule(
        db, session_id, current_user.id, payload.date, payload.start_time
    )
