from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import date, datetime, time
from decimal import Decimal

from mentorly.enums import ParticipantRole, RefundTier, SessionStatus, UrgencyLevel

# ======================
# SESSION REQUEST MODELS
# ======================

class SessionBookRequest(BaseModel):
    mentor_id: int
    date: date
    start_time: time
    duration_minutes: int = 60
    is_free_trial: bool = False
    lesson_plan: Optional[str] = Field(None, max_length=2000)


class ReasonRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class NoShowRequest(BaseModel):
    absent_party: ParticipantRole


class RescheduleRequest(BaseModel):
    date: date
    start_time: time

# ======================
# SESSION RESPONSE MODELS
# ======================

class SessionResponse(BaseModel):
    id: int
    mentor_id: int
    mentee_id: int
    scheduled_at: datetime
    scheduled_end_at: datetime
    duration_minutes: int
    timezone: str
    status: SessionStatus
    mentor_confirmed: bool
    price: Decimal
    platform_fee: Decimal
    total_amount: Decimal
    currency: str
    is_free_trial: bool
    lesson_plan: Optional[str] = None
    meeting_url: Optional[str] = None
    cancelled_by: Optional[ParticipantRole] = None
    cancellation_reason: Optional[str] = None
    refund_tier: Optional[RefundTier] = None
    refund_amount: Optional[Decimal] = None
    compensation_amount: Optional[Decimal] = None
    rescheduled_from_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class EligibilityResponse(BaseModel):
    """Snapshot of the time-dependent views; clients poll for fresh values."""
    session_id: int
    status: SessionStatus
    can_join: bool
    can_cancel: bool
    refund_tier: Optional[RefundTier] = None
    hours_until_start: float
    urgency: UrgencyLevel
    time_remaining: str
