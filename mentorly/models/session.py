# mentorly/models/session.py
from sqlalchemy import (
    Column, Integer, String, Boolean, ForeignKey, Numeric, DateTime, TIMESTAMP,
    Enum, Index, text, func,
)
from sqlalchemy.orm import relationship, validates
from mentorly.database import Base
from mentorly.enums import SessionStatus, ParticipantRole, RefundTier
from mentorly.exceptions import InvalidTransitionError

_ACTIVE_SLOT_PREDICATE = text(
    "status IN ('PENDING_CONFIRMATION', 'CONFIRMED', 'IN_PROGRESS')"
)


class Session(Base):
    __tablename__ = "sessions"
    __table_args__ = (
        # Store-level serialization point: one active booking per mentor start time.
        Index(
            "uq_sessions_mentor_active_slot",
            "mentor_id",
            "scheduled_at",
            unique=True,
            sqlite_where=_ACTIVE_SLOT_PREDICATE,
            postgresql_where=_ACTIVE_SLOT_PREDICATE,
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    mentor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    mentee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    scheduled_at = Column(DateTime(timezone=True), nullable=False)
    scheduled_end_at = Column(DateTime(timezone=True), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    timezone = Column(String(64), nullable=False, default="UTC")

    status = Column(Enum(SessionStatus), nullable=False, default=SessionStatus.PENDING_CONFIRMATION)

    # Amounts keep full precision; payment intents are rounded when emitted.
    price = Column(Numeric(14, 6), nullable=False, default=0)
    platform_fee = Column(Numeric(14, 6), nullable=False, default=0)
    total_amount = Column(Numeric(14, 6), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="EUR")
    is_free_trial = Column(Boolean, nullable=False, default=False)

    lesson_plan = Column(String(2000))
    meeting_url = Column(String(500))

    confirmed_at = Column(DateTime(timezone=True))
    rejected_at = Column(DateTime(timezone=True))
    cancelled_at = Column(DateTime(timezone=True))
    cancelled_by = Column(Enum(ParticipantRole))
    cancellation_reason = Column(String(1000))
    mentor_joined_at = Column(DateTime(timezone=True))
    mentee_joined_at = Column(DateTime(timezone=True))
    started_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    no_show_recorded_at = Column(DateTime(timezone=True))

    refund_tier = Column(Enum(RefundTier))
    refund_amount = Column(Numeric(14, 6))
    compensation_amount = Column(Numeric(14, 6))

    rescheduled_from_id = Column(Integer, ForeignKey("sessions.id"), nullable=True)

    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, onupdate=func.now())

    # Relationships
    mentor = relationship("User", foreign_keys=[mentor_id], back_populates="mentor_sessions")
    mentee = relationship("User", foreign_keys=[mentee_id], back_populates="mentee_sessions")
    transactions = relationship("PaymentTransaction", back_populates="session")
    rescheduled_from = relationship("Session", remote_side=[id])

    @property
    def mentor_confirmed(self) -> bool:
        return self.confirmed_at is not None

    @validates("scheduled_at", "scheduled_end_at", "duration_minutes")
    def _freeze_schedule(self, key, value):
        current = self.__dict__.get(key)
        if current is not None and current != value:
            raise InvalidTransitionError(
                "Session time cannot be edited in place; reschedule instead",
                details={"session_id": self.id, "field": key},
            )
        return value

    def __repr__(self) -> str:
        return f"<Session id={self.id} mentor={self.mentor_id} mentee={self.mentee_id} status={self.status}>"
