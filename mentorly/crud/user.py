# mentorly/crud/user.py
from typing import Optional

from sqlalchemy.orm import Session

from mentorly import models


def get_user(db: Session, user_id: int) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_mentor_profile(
    db: Session,
    mentor_id: int,
    *,
    for_update: bool = False,
) -> Optional[models.MentorProfile]:
    """
    Load a mentor's profile by the mentor's user id.

    With ``for_update`` the row is locked for the rest of the transaction,
    which serializes concurrent bookings for the same mentor on PostgreSQL.
    """
    query = db.query(models.MentorProfile).filter(models.MentorProfile.user_id == mentor_id)
    if for_update:
        query = query.with_for_update()
    return query.first()
