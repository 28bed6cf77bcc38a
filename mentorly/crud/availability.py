# mentorly/crud/availability.py
from typing import List

from sqlalchemy.orm import Session

from mentorly import models


def get_rules_for_mentor(db: Session, mentor_id: int) -> List[models.AvailabilityRule]:
    return db.query(models.AvailabilityRule).filter(
        models.AvailabilityRule.mentor_id == mentor_id
    ).order_by(
        models.AvailabilityRule.day_of_week,
        models.AvailabilityRule.start_time,
    ).all()
