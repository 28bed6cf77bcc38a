from __future__ import annotations

import logging
import threading
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mentorly import models
from mentorly.models.notification import Notification
from mentorly.utils.email import is_email_enabled, send_email

logger = logging.getLogger(__name__)


EMAIL_SUBJECT_BY_EVENT = {
    "session_requested": "New session request on Mentorly",
    "session_confirmed": "Your session was confirmed on Mentorly",
    "session_rejected": "Session request declined on Mentorly",
    "session_cancelled": "Session cancelled on Mentorly",
    "session_started": "Your session has started on Mentorly",
    "session_completed": "Session completed on Mentorly",
    "session_no_show": "Missed session on Mentorly",
    "session_rescheduled": "Session rescheduled on Mentorly",
}


def list_user_notifications(
    db: Session,
    *,
    user_id: int,
    unread_only: bool = False,
    limit: int = 50,
) -> List[Notification]:
    query = db.query(Notification).filter(Notification.recipient_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def mark_notification_read(
    db: Session,
    *,
    user_id: int,
    notification_id: int,
) -> Optional[Notification]:
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.recipient_id == user_id,
    ).first()
    if not notification:
        return None
    notification.is_read = True
    db.commit()
    return notification


def mark_all_notifications_read(db: Session, *, user_id: int) -> int:
    updated = db.query(Notification).filter(
        Notification.recipient_id == user_id,
        Notification.is_read.is_(False),
    ).update({"is_read": True}, synchronize_session=False)
    db.commit()
    return int(updated)


def get_unread_count(db: Session, *, user_id: int) -> int:
    return db.query(Notification).filter(
        Notification.recipient_id == user_id,
        Notification.is_read.is_(False),
    ).count()


def create_notification(
    db: Session,
    *,
    recipient_id: int,
    actor_id: Optional[int],
    session_id: Optional[int],
    event_type: str,
    message: str,
) -> Notification:
    notification = Notification(
        recipient_id=recipient_id,
        actor_id=actor_id,
        session_id=session_id,
        event_type=event_type,
        message=message,
    )
    db.add(notification)
    db.flush()
    return notification


def notify_counterparty(
    db: Session,
    session: models.Session,
    *,
    actor_id: Optional[int],
    event_type: str,
    message: str,
) -> List[Notification]:
    """
    Notify whoever did not trigger the event. System-triggered events
    (``actor_id`` None) go to both participants.
    """
    recipients = [
        user_id for user_id in (session.mentor_id, session.mentee_id)
        if user_id != actor_id
    ]
    return [
        create_notification(
            db,
            recipient_id=recipient_id,
            actor_id=actor_id,
            session_id=session.id,
            event_type=event_type,
            message=message,
        )
        for recipient_id in recipients
    ]


def _send_notification_email(to_email: str, subject: str, body_text: str, *, notification_id: Optional[int], recipient_id: Optional[int]) -> None:
    """Send SMTP mail in a background thread so API latency stays low."""
    sent = send_email(
        to_email=to_email,
        subject=subject,
        body_text=body_text,
    )
    if not sent:
        logger.info(
            "Notification email not sent (recipient_id=%s, notification_id=%s)",
            recipient_id,
            notification_id,
        )


def dispatch_email_for_notification(db: Session, notification: Notification) -> bool:
    """
    Best-effort email delivery for a committed notification.
    Delivery problems are logged and never fail the request.
    """
    if not is_email_enabled():
        return False

    try:
        recipient = db.query(models.User).filter(
            models.User.id == notification.recipient_id
        ).first()
        if not recipient or not recipient.email:
            return False

        subject = EMAIL_SUBJECT_BY_EVENT.get(
            notification.event_type,
            "New notification from Mentorly",
        )
        recipient_name = (recipient.name or "there").strip() or "there"
        body_text = (
            f"Hi {recipient_name},\n\n"
            f"{notification.message}\n\n"
            f"Session ID: {notification.session_id or 'N/A'}\n\n"
            "Open Mentorly to view details."
        )

        worker = threading.Thread(
            target=_send_notification_email,
            args=(
                recipient.email,
                subject,
                body_text,
            ),
            kwargs={
                "notification_id": getattr(notification, "id", None),
                "recipient_id": notification.recipient_id,
            },
            daemon=True,
        )
        worker.start()
        return True
    except (SQLAlchemyError, RuntimeError) as exc:
        logger.warning(
            "Notification email dispatch failed (notification_id=%s): %s",
            getattr(notification, "id", None),
            exc,
        )
        return False


def dispatch_emails(db: Session, notifications: List[Notification]) -> int:
    return sum(1 for notification in notifications if dispatch_email_for_notification(db, notification))
