# mentorly/services/session_state_machine.py
"""
Session State Machine

Owns the lifecycle of a single session record: which events are legal in
which state, who may trigger them, and what refund/compensation outcome a
terminal transition carries. Functions here mutate the given record in memory
only; persisting it (and emitting payment intents and notifications) is the
job of ``session_service``.

    PENDING_CONFIRMATION --confirm--> CONFIRMED --start--> IN_PROGRESS --complete--> COMPLETED
    PENDING_CONFIRMATION --reject--> REJECTED_BY_MENTOR
    PENDING_CONFIRMATION | CONFIRMED --cancel (mentee)--> CANCELLED_BY_MENTEE
    CONFIRMED --cancel (mentor)--> CANCELLED_BY_MENTOR
    CONFIRMED --no-show--> NO_SHOW_MENTOR | NO_SHOW_MENTEE
"""

from dataclasses import dataclass
from datetime import datetime
from typing import FrozenSet, Optional

from mentorly.config import settings
from mentorly.enums import ParticipantRole, RefundTier, SessionEvent, SessionStatus
from mentorly.exceptions import (
    InvalidTransitionError,
    ReasonRequiredError,
    UnauthorizedActorError,
)
from mentorly.services import eligibility, refund_policy
from mentorly.services.refund_policy import RefundOutcome
from mentorly.utils.timeutils import ensure_utc, resolve_now

S = SessionStatus
E = SessionEvent

TRANSITIONS = {
    (S.PENDING_CONFIRMATION, E.CONFIRM): S.CONFIRMED,
    (S.PENDING_CONFIRMATION, E.REJECT): S.REJECTED_BY_MENTOR,
    (S.PENDING_CONFIRMATION, E.CANCEL_BY_MENTEE): S.CANCELLED_BY_MENTEE,
    (S.CONFIRMED, E.CANCEL_BY_MENTEE): S.CANCELLED_BY_MENTEE,
    (S.CONFIRMED, E.CANCEL_BY_MENTOR): S.CANCELLED_BY_MENTOR,
    (S.CONFIRMED, E.NO_SHOW_MENTOR): S.NO_SHOW_MENTOR,
    (S.CONFIRMED, E.NO_SHOW_MENTEE): S.NO_SHOW_MENTEE,
    (S.CONFIRMED, E.START): S.IN_PROGRESS,
    (S.IN_PROGRESS, E.COMPLETE): S.COMPLETED,
}

NO_SHOW_EVENTS = {
    ParticipantRole.MENTOR: E.NO_SHOW_MENTOR,
    ParticipantRole.MENTEE: E.NO_SHOW_MENTEE,
}


@dataclass(frozen=True)
class TransitionResult:
    session_id: Optional[int]
    event: SessionEvent
    from_status: SessionStatus
    to_status: SessionStatus
    occurred_at: datetime
    actor_role: Optional[ParticipantRole] = None
    refund: Optional[RefundOutcome] = None


# ======================
# TABLE LOOKUPS
# ======================

def allowed_events(status: SessionStatus) -> FrozenSet[SessionEvent]:
    status = SessionStatus(status)
    return frozenset(event for (source, event) in TRANSITIONS if source == status)


def next_status(session, event: SessionEvent) -> SessionStatus:
    current = SessionStatus(session.status)
    target = TRANSITIONS.get((current, event))
    if target is None:
        if current.is_terminal:
            message = f"Session is already {current.value}; no further transitions are allowed"
        else:
            message = f"Cannot {event.value} a session in status {current.value}"
        raise InvalidTransitionError(
            message,
            details={
                "session_id": session.id,
                "event": event.value,
                "current_status": current.value,
            },
        )
    return target


def actor_role(session, actor_id: int) -> ParticipantRole:
    if actor_id is not None and actor_id == session.mentor_id:
        return ParticipantRole.MENTOR
    if actor_id is not None and actor_id == session.mentee_id:
        return ParticipantRole.MENTEE
    raise UnauthorizedActorError(
        "Only the session's mentor or mentee can act on it",
        details={"session_id": session.id, "actor_id": actor_id},
    )


def _require_role(session, actor_id: int, role: ParticipantRole, event: SessionEvent) -> ParticipantRole:
    found = actor_role(session, actor_id)
    if found != role:
        raise UnauthorizedActorError(
            f"Only the {role.value} can {event.value} this session",
            details={
                "session_id": session.id,
                "actor_id": actor_id,
                "event": event.value,
                "current_status": SessionStatus(session.status).value,
            },
        )
    return found


def _require_reason(session, reason: Optional[str], event: SessionEvent) -> str:
    cleaned = (reason or "").strip()
    if len(cleaned) < settings.MIN_REASON_LENGTH:
        raise ReasonRequiredError(
            f"A reason of at least {settings.MIN_REASON_LENGTH} characters is required",
            details={
                "session_id": session.id,
                "event": event.value,
                "current_status": SessionStatus(session.status).value,
                "reason_length": len(cleaned),
            },
        )
    return cleaned


def _apply(session, event, target, now, role=None, refund=None) -> TransitionResult:
    source = SessionStatus(session.status)
    session.status = target
    if refund is not None:
        session.refund_tier = refund.tier
        session.refund_amount = refund.refund_amount
        session.compensation_amount = refund.compensation_amount
    return TransitionResult(
        session_id=session.id,
        event=event,
        from_status=source,
        to_status=target,
        occurred_at=now,
        actor_role=role,
        refund=refund,
    )


# ======================
# TRANSITIONS
# ======================

def confirm(session, actor_id: int, now: Optional[datetime] = None) -> TransitionResult:
    role = _require_role(session, actor_id, ParticipantRole.MENTOR, E.CONFIRM)
    target = next_status(session, E.CONFIRM)
    now = resolve_now(now)
    session.confirmed_at = now
    return _apply(session, E.CONFIRM, target, now, role)


def reject(session, actor_id: int, reason: Optional[str], now: Optional[datetime] = None) -> TransitionResult:
    role = _require_role(session, actor_id, ParticipantRole.MENTOR, E.REJECT)
    target = next_status(session, E.REJECT)
    cleaned = _require_reason(session, reason, E.REJECT)
    now = resolve_now(now)

    session.rejected_at = now
    session.cancellation_reason = cleaned
    refund = refund_policy.for_rejection(session.total_amount, session.currency)
    return _apply(session, E.REJECT, target, now, role, refund)


def cancel(
    session,
    actor_id: int,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> TransitionResult:
    """
    Cancel before the session starts.

    Mentee cancellations are refunded by tier and need a reason whenever the
    tier is below FULL. Mentor cancellations are always fully refunded with
    compensation.
    """
    role = actor_role(session, actor_id)
    event = E.CANCEL_BY_MENTOR if role == ParticipantRole.MENTOR else E.CANCEL_BY_MENTEE
    target = next_status(session, event)
    now = resolve_now(now)

    if now >= ensure_utc(session.scheduled_at):
        raise InvalidTransitionError(
            "Sessions can only be cancelled before they start",
            details={
                "session_id": session.id,
                "event": event.value,
                "current_status": SessionStatus(session.status).value,
            },
        )

    if role == ParticipantRole.MENTEE:
        tier = eligibility.refund_tier(session, now)
        if tier != RefundTier.FULL:
            reason = _require_reason(session, reason, event)
        refund = refund_policy.for_mentee_cancellation(session.total_amount, session.currency, tier)
    else:
        refund = refund_policy.for_mentor_cancellation(session.total_amount, session.currency)

    session.cancelled_at = now
    session.cancelled_by = role
    session.cancellation_reason = (reason or "").strip() or None
    return _apply(session, event, target, now, role, refund)


def record_join(session, actor_id: int, now: Optional[datetime] = None) -> Optional[TransitionResult]:
    """
    Record that a participant joined the call.

    Returns the START transition once both parties are in, otherwise None.
    Rejoining a session already in progress is a no-op.
    """
    role = actor_role(session, actor_id)
    status = SessionStatus(session.status)
    if status == S.IN_PROGRESS:
        return None

    now = resolve_now(now)
    if not eligibility.can_join(session, now, role):
        raise InvalidTransitionError(
            "Session cannot be joined right now",
            details={
                "session_id": session.id,
                "event": "join",
                "current_status": status.value,
                "role": role.value,
            },
        )

    if role == ParticipantRole.MENTOR and session.mentor_joined_at is None:
        session.mentor_joined_at = now
    elif role == ParticipantRole.MENTEE and session.mentee_joined_at is None:
        session.mentee_joined_at = now

    if session.mentor_joined_at is not None and session.mentee_joined_at is not None:
        return start(session, now)
    return None


def start(session, now: Optional[datetime] = None) -> TransitionResult:
    target = next_status(session, E.START)
    now = resolve_now(now)
    session.started_at = now
    return _apply(session, E.START, target, now)


def mark_no_show(session, absent_party: ParticipantRole, now: Optional[datetime] = None) -> TransitionResult:
    """Record the attendance signal; the refund follows from who was absent."""
    absent_party = ParticipantRole(absent_party)
    event = NO_SHOW_EVENTS[absent_party]
    target = next_status(session, event)
    now = resolve_now(now)

    if now < ensure_utc(session.scheduled_at):
        raise InvalidTransitionError(
            "A no-show cannot be recorded before the session starts",
            details={
                "session_id": session.id,
                "event": event.value,
                "current_status": SessionStatus(session.status).value,
            },
        )

    if absent_party == ParticipantRole.MENTOR:
        refund = refund_policy.for_mentor_no_show(session.total_amount, session.currency)
    else:
        refund = refund_policy.for_mentee_no_show(session.total_amount, session.currency)

    session.no_show_recorded_at = now
    return _apply(session, event, target, now, refund=refund)


def complete(session, now: Optional[datetime] = None, actor_id: Optional[int] = None) -> TransitionResult:
    role = actor_role(session, actor_id) if actor_id is not None else None
    target = next_status(session, E.COMPLETE)
    now = resolve_now(now)
    session.completed_at = now
    return _apply(session, E.COMPLETE, target, now, role)
