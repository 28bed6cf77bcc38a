# mentorly/crud/session.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from mentorly import models
from mentorly.enums import SessionStatus, BLOCKING_STATUSES


def get_session(db: Session, session_id: int, *, for_update: bool = False) -> Optional[models.Session]:
    query = db.query(models.Session).filter(models.Session.id == session_id)
    if for_update:
        query = query.with_for_update()
    return query.first()


def list_blocking_sessions(
    db: Session,
    mentor_id: int,
    window_start: datetime,
    window_end: datetime,
) -> List[models.Session]:
    """Sessions occupying the mentor's calendar that overlap the window."""
    return db.query(models.Session).filter(
        models.Session.mentor_id == mentor_id,
        models.Session.status.in_(list(BLOCKING_STATUSES)),
        models.Session.scheduled_at < window_end,
        models.Session.scheduled_end_at > window_start,
    ).order_by(models.Session.scheduled_at).all()


def list_sessions_for_user(
    db: Session,
    user_id: int,
    status: Optional[SessionStatus] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[models.Session]:
    query = db.query(models.Session).filter(
        (models.Session.mentee_id == user_id) |
        (models.Session.mentor_id == user_id)
    )
    if status:
        query = query.filter(models.Session.status == status)
    return query.order_by(models.Session.scheduled_at.desc()).limit(limit).offset(offset).all()


def list_confirmed_started_before(db: Session, cutoff: datetime) -> List[models.Session]:
    """CONFIRMED sessions whose start is at or before ``cutoff``."""
    return db.query(models.Session).filter(
        models.Session.status == SessionStatus.CONFIRMED,
        models.Session.scheduled_at <= cutoff,
    ).order_by(models.Session.scheduled_at).all()


def has_prior_session(
    db: Session,
    mentor_id: int,
    mentee_id: int,
    exclude_session_id: Optional[int] = None,
) -> bool:
    """True if the pair already has a scheduled, running or completed session."""
    query = db.query(models.Session.id).filter(
        models.Session.mentor_id == mentor_id,
        models.Session.mentee_id == mentee_id,
        models.Session.status.in_([
            SessionStatus.PENDING_CONFIRMATION,
            SessionStatus.CONFIRMED,
            SessionStatus.IN_PROGRESS,
            SessionStatus.COMPLETED,
        ]),
    )
    if exclude_session_id is not None:
        query = query.filter(models.Session.id != exclude_session_id)
    return query.first() is not None
