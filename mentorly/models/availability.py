# mentorly/models/availability.py
from sqlalchemy import Column, Integer, ForeignKey, Time, TIMESTAMP, CheckConstraint, func
from mentorly.database import Base


class AvailabilityRule(Base):
    """One recurring weekly interval of a mentor (0 = Sunday .. 6 = Saturday)."""

    __tablename__ = "availability_rules"
    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_availability_day_of_week"),
        CheckConstraint("start_time < end_time", name="ck_availability_interval_order"),
    )

    id = Column(Integer, primary_key=True, index=True)
    mentor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now())
