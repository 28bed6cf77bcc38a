# mentorly/services/session_service.py
"""
Session Lifecycle Service

Persisting wrappers around the session state machine. Each operation loads
the session row for update, applies one transition in memory, emits the
payment intents and notifications the transition implies, and commits the
lot atomically. On any failure the transaction is rolled back and the error
re-raised unchanged.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from mentorly import models
from mentorly.config import settings
from mentorly.crud import session as session_crud
from mentorly.enums import ParticipantRole, RefundTier, SessionEvent, SessionStatus
from mentorly.exceptions import DomainException, InvalidTransitionError, NotFoundError, UnauthorizedActorError
from mentorly.services import (
    booking_service,
    eligibility,
    notification_service,
    payment_service,
    session_state_machine as machine,
)
from mentorly.services.session_state_machine import TransitionResult
from mentorly.utils.timeutils import ensure_utc, resolve_now

logger = logging.getLogger(__name__)


EVENT_NOTIFICATIONS = {
    SessionEvent.CONFIRM: ("session_confirmed", "Your session on {when} was confirmed"),
    SessionEvent.REJECT: ("session_rejected", "Your session request for {when} was declined"),
    SessionEvent.CANCEL_BY_MENTEE: ("session_cancelled", "The mentee cancelled the session on {when}"),
    SessionEvent.CANCEL_BY_MENTOR: ("session_cancelled", "The mentor cancelled the session on {when}"),
    SessionEvent.START: ("session_started", "Your session on {when} has started"),
    SessionEvent.COMPLETE: ("session_completed", "Your session on {when} was completed"),
    SessionEvent.NO_SHOW_MENTOR: ("session_no_show", "The mentor did not attend the session on {when}"),
    SessionEvent.NO_SHOW_MENTEE: ("session_no_show", "The mentee did not attend the session on {when}"),
}


@contextmanager
def _unit_of_work(db: Session):
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise


def _load(db: Session, session_id: int) -> models.Session:
    session = session_crud.get_session(db, session_id, for_update=True)
    if session is None:
        raise NotFoundError(
            f"Session {session_id} not found",
            details={"session_id": session_id},
        )
    return session


def get_session_or_404(db: Session, session_id: int) -> models.Session:
    session = session_crud.get_session(db, session_id)
    if session is None:
        raise NotFoundError(
            f"Session {session_id} not found",
            details={"session_id": session_id},
        )
    return session


def _record(
    db: Session,
    session: models.Session,
    result: TransitionResult,
    actor_id: Optional[int],
) -> List[models.Notification]:
    """Emit the side effects of one transition inside the open transaction."""
    if result.refund is not None:
        payment_service.apply_refund_outcome(db, session, result.refund)
    if result.event == SessionEvent.COMPLETE:
        payment_service.capture_payment(db, session)

    event_type, template = EVENT_NOTIFICATIONS[result.event]
    when = ensure_utc(session.scheduled_at).strftime("%Y-%m-%d %H:%M UTC")
    return notification_service.notify_counterparty(
        db,
        session,
        actor_id=actor_id,
        event_type=event_type,
        message=template.format(when=when),
    )


def _finish(db: Session, session: models.Session, result: TransitionResult, notifications) -> models.Session:
    db.refresh(session)
    logger.info(
        "Session %s %s: %s -> %s%s",
        result.session_id,
        result.event.value,
        result.from_status.value,
        result.to_status.value,
        f" (refund tier {result.refund.tier.value})" if result.refund else "",
    )
    notification_service.dispatch_emails(db, notifications)
    return session


# ======================
# TRANSITIONS
# ======================

def confirm(db: Session, session_id: int, actor_id: int, now: Optional[datetime] = None) -> models.Session:
    with _unit_of_work(db):
        session = _load(db, session_id)
        result = machine.confirm(session, actor_id, now)
        notifications = _record(db, session, result, actor_id)
    return _finish(db, session, result, notifications)


def reject(
    db: Session,
    session_id: int,
    actor_id: int,
    reason: Optional[str],
    now: Optional[datetime] = None,
) -> models.Session:
    with _unit_of_work(db):
        session = _load(db, session_id)
        result = machine.reject(session, actor_id, reason, now)
        notifications = _record(db, session, result, actor_id)
    return _finish(db, session, result, notifications)


def cancel(
    db: Session,
    session_id: int,
    actor_id: int,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.Session:
    with _unit_of_work(db):
        session = _load(db, session_id)
        result = machine.cancel(session, actor_id, reason, now)
        notifications = _record(db, session, result, actor_id)
    return _finish(db, session, result, notifications)


def join(db: Session, session_id: int, actor_id: int, now: Optional[datetime] = None) -> models.Session:
    """Record a join; commits the START transition once both parties are in."""
    with _unit_of_work(db):
        session = _load(db, session_id)
        result = machine.record_join(session, actor_id, now)
        notifications = _record(db, session, result, None) if result else []

    if result is None:
        db.refresh(session)
        return session
    return _finish(db, session, result, notifications)


def mark_no_show(
    db: Session,
    session_id: int,
    absent_party: ParticipantRole,
    now: Optional[datetime] = None,
) -> models.Session:
    """Apply an external attendance signal."""
    with _unit_of_work(db):
        session = _load(db, session_id)
        result = machine.mark_no_show(session, absent_party, now)
        notifications = _record(db, session, result, None)
    return _finish(db, session, result, notifications)


def report_no_show(
    db: Session,
    session_id: int,
    actor_id: int,
    absent_party: ParticipantRole,
    now: Optional[datetime] = None,
) -> models.Session:
    """
    A participant reports the other party absent.

    Accepted only when recorded attendance agrees: the grace period has run
    out and ``absent_party`` is the one who has not joined.
    """
    now = resolve_now(now)
    absent_party = ParticipantRole(absent_party)
    with _unit_of_work(db):
        session = _load(db, session_id)
        if machine.actor_role(session, actor_id) == absent_party:
            raise UnauthorizedActorError(
                "Participants cannot report themselves as absent",
                details={"session_id": session_id, "actor_id": actor_id},
            )
        if eligibility.no_show_candidate(session, now) != absent_party:
            raise InvalidTransitionError(
                f"The {absent_party.value} cannot be reported absent for this session",
                details={
                    "session_id": session.id,
                    "event": machine.NO_SHOW_EVENTS[absent_party].value,
                    "current_status": SessionStatus(session.status).value,
                },
            )
        result = machine.mark_no_show(session, absent_party, now)
        notifications = _record(db, session, result, actor_id)
    return _finish(db, session, result, notifications)


def complete(
    db: Session,
    session_id: int,
    actor_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> models.Session:
    with _unit_of_work(db):
        session = _load(db, session_id)
        result = machine.complete(session, now, actor_id)
        notifications = _record(db, session, result, actor_id)
    return _finish(db, session, result, notifications)


def sweep_no_shows(db: Session, now: Optional[datetime] = None) -> List[models.Session]:
    """
    Apply the automatic no-show rule to every overdue CONFIRMED session.

    Meant to be called periodically by the deployment's scheduler. Each
    session is committed in its own transaction; one that fails is logged
    and left for the next run.
    """
    now = resolve_now(now)
    cutoff = now - timedelta(minutes=settings.NO_SHOW_GRACE_MINUTES)
    results = []
    for candidate in session_crud.list_confirmed_started_before(db, cutoff):
        absent_party = eligibility.no_show_candidate(candidate, now)
        if absent_party is None:
            continue
        session_id = candidate.id
        try:
            results.append(mark_no_show(db, session_id, absent_party, now))
        except DomainException as exc:
            logger.warning(
                "No-show sweep skipped session %s (%s): %s",
                session_id,
                absent_party.value,
                exc.message,
            )
    if results:
        logger.info("No-show sweep closed %d session(s)", len(results))
    return results


def reschedule(
    db: Session,
    session_id: int,
    actor_id: int,
    new_date: date,
    new_start_time: time,
    now: Optional[datetime] = None,
) -> models.Session:
    """
    Move a booking to a new slot.

    The old session is cancelled by the mentee with a full refund and a new
    one is booked in the same transaction, linked through
    ``rescheduled_from_id``. Only possible while a cancellation would still
    be fully refunded.
    """
    now = resolve_now(now)
    with _unit_of_work(db):
        old = _load(db, session_id)
        role = machine.actor_role(old, actor_id)
        if role != ParticipantRole.MENTEE or eligibility.refund_tier(old, now) != RefundTier.FULL:
            raise InvalidTransitionError(
                f"Sessions can only be rescheduled by the mentee more than "
                f"{settings.FULL_REFUND_HOURS} hours in advance",
                details={
                    "session_id": old.id,
                    "event": "reschedule",
                    "current_status": old.status.value,
                },
            )

        result = machine.cancel(old, actor_id, "Rescheduled", now)
        payment_service.apply_refund_outcome(db, old, result.refund)
        # The freed start time must be visible to the slot check below.
        db.flush()

        request = booking_service.BookingRequest(
            mentor_id=old.mentor_id,
            mentee_id=old.mentee_id,
            date=new_date,
            start_time=new_start_time,
            duration_minutes=old.duration_minutes,
            is_free_trial_requested=old.is_free_trial,
            lesson_plan=old.lesson_plan,
        )
        new_session, notifications = booking_service.create_booking(
            db, request, now, rescheduled_from_id=old.id
        )

    db.refresh(new_session)
    logger.info(
        "Session %s rescheduled to session %s (%s)",
        old.id,
        new_session.id,
        ensure_utc(new_session.scheduled_at).isoformat(),
    )
    notification_service.dispatch_emails(db, notifications)
    return new_session
