from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Numeric, TIMESTAMP, func
from sqlalchemy.orm import relationship
from mentorly.database import Base


# ---------------- USER (ACCOUNT TABLE) ----------------
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    role = Column(String(20), nullable=False)  # "mentor" | "mentee"
    is_active = Column(Boolean, default=True)
    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, onupdate=func.now())

    mentor_profile = relationship(
        "MentorProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    mentee_sessions = relationship("Session", foreign_keys="Session.mentee_id", back_populates="mentee")
    mentor_sessions = relationship("Session", foreign_keys="Session.mentor_id", back_populates="mentor")


# ---------------- MENTOR PROFILE ----------------
class MentorProfile(Base):
    __tablename__ = "mentor_profiles"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    hourly_rate = Column(Numeric(10, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="EUR")
    timezone = Column(String(64), nullable=False, default="UTC")

    # Free booking paths are independent of each other.
    free_trial_available = Column(Boolean, default=False, nullable=False)
    free_trial_duration = Column(Integer, default=30, nullable=False)
    free_sessions_only = Column(Boolean, default=False, nullable=False)

    min_session_duration = Column(Integer, default=30, nullable=False)
    max_session_duration = Column(Integer, default=120, nullable=False)
    is_accepting_students = Column(Boolean, default=True, nullable=False)

    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="mentor_profile")
