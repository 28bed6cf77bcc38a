# mentorly/services/eligibility.py
"""
Eligibility windows.

Stateless queries answering "can this session be joined / cancelled now?",
"which refund tier applies right now?" and "how urgent is the countdown?".
Every function takes ``now`` explicitly (or samples the clock when omitted)
and must be called again on each render or poll tick; nothing is cached.
"""

from datetime import datetime, timedelta
from typing import Optional, Tuple

from mentorly.config import settings
from mentorly.enums import (
    ParticipantRole,
    RefundTier,
    SessionStatus,
    UrgencyLevel,
    SCHEDULED_STATUSES,
)
from mentorly.utils.timeutils import ensure_utc, resolve_now


def hours_until(scheduled_at: datetime, now: Optional[datetime] = None) -> float:
    """Fractional hours from ``now`` to ``scheduled_at`` (negative once started)."""
    now = resolve_now(now)
    return (ensure_utc(scheduled_at) - now).total_seconds() / 3600


def join_window(session, role: ParticipantRole = ParticipantRole.MENTEE) -> Tuple[datetime, datetime]:
    start = ensure_utc(session.scheduled_at)
    if role == ParticipantRole.MENTOR:
        # The mentor must be present from the start.
        return (
            start - timedelta(minutes=settings.MENTOR_JOIN_EARLY_MINUTES),
            start + timedelta(minutes=settings.MENTOR_JOIN_LATE_MINUTES),
        )
    end = ensure_utc(session.scheduled_end_at)
    return (
        start - timedelta(minutes=settings.MENTEE_JOIN_EARLY_MINUTES),
        end + timedelta(minutes=settings.MENTEE_JOIN_LATE_MINUTES),
    )


def can_join(
    session,
    now: Optional[datetime] = None,
    role: ParticipantRole = ParticipantRole.MENTEE,
) -> bool:
    if SessionStatus(session.status) != SessionStatus.CONFIRMED:
        return False
    now = resolve_now(now)
    opens_at, closes_at = join_window(session, role)
    return opens_at <= now <= closes_at


def can_cancel(session, now: Optional[datetime] = None) -> bool:
    if SessionStatus(session.status) not in SCHEDULED_STATUSES:
        return False
    return resolve_now(now) < ensure_utc(session.scheduled_at)


def refund_tier(
    session,
    now: Optional[datetime] = None,
    *,
    full_refund_hours: Optional[float] = None,
    partial_refund_hours: Optional[float] = None,
) -> RefundTier:
    """
    Tier for a mentee-initiated cancellation at ``now``.

    Mentor cancellations and mentor no-shows have fixed outcomes and do not
    go through this function.
    """
    if full_refund_hours is None:
        full_refund_hours = settings.FULL_REFUND_HOURS
    if partial_refund_hours is None:
        partial_refund_hours = settings.PARTIAL_REFUND_HOURS

    hours = hours_until(session.scheduled_at, now)
    if hours > full_refund_hours:
        return RefundTier.FULL
    if hours > partial_refund_hours:
        return RefundTier.PARTIAL_50
    return RefundTier.NONE


def countdown_urgency(scheduled_at: datetime, now: Optional[datetime] = None) -> UrgencyLevel:
    """Display priority only; never used as a transition guard."""
    hours = hours_until(scheduled_at, now)
    if hours < 1:
        return UrgencyLevel.URGENT
    if hours < 24:
        return UrgencyLevel.WARNING
    return UrgencyLevel.NEUTRAL


def time_remaining_label(scheduled_at: datetime, now: Optional[datetime] = None) -> str:
    total_seconds = int((ensure_utc(scheduled_at) - resolve_now(now)).total_seconds())
    if total_seconds <= 0:
        return "Now"

    days = total_seconds // 86400
    hours = (total_seconds // 3600) % 24
    minutes = (total_seconds // 60) % 60

    if days > 0:
        label = f"In {days} day{'s' if days > 1 else ''}"
        return f"{label} {hours}h" if hours > 0 else label
    if hours > 0:
        return f"In {hours}h {minutes}min" if minutes > 0 else f"In {hours}h"
    return f"In {minutes} min"


def no_show_candidate(
    session,
    now: Optional[datetime] = None,
    *,
    grace_minutes: Optional[int] = None,
) -> Optional[ParticipantRole]:
    """
    Automatic no-show rule.

    Once ``scheduled_at + grace`` has passed and the session is still
    CONFIRMED, the party that never joined is the no-show. The mentor is
    checked first: if neither joined, the mentee is refunded.
    """
    if SessionStatus(session.status) != SessionStatus.CONFIRMED:
        return None
    if grace_minutes is None:
        grace_minutes = settings.NO_SHOW_GRACE_MINUTES

    deadline = ensure_utc(session.scheduled_at) + timedelta(minutes=grace_minutes)
    if resolve_now(now) < deadline:
        return None
    if session.mentor_joined_at is None:
        return ParticipantRole.MENTOR
    if session.mentee_joined_at is None:
        return ParticipantRole.MENTEE
    return None
