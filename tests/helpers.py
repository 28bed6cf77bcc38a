"""Plain in-memory session records for engine tests that need no database."""

from datetime import datetime, timedelta, UTC
from decimal import Decimal
from types import SimpleNamespace

from mentorly.enums import SessionStatus

MENTOR_ID = 1
MENTEE_ID = 2

# Wednesday; database tests pass this as "now" unless stated otherwise.
NOW = datetime(2030, 1, 2, 8, 0, tzinfo=UTC)


def make_session(
    scheduled_at: datetime,
    status: SessionStatus = SessionStatus.CONFIRMED,
    duration_minutes: int = 60,
    total_amount: Decimal = Decimal("34.50"),
    **overrides,
):
    fields = dict(
        id=42,
        mentor_id=MENTOR_ID,
        mentee_id=MENTEE_ID,
        status=status,
        scheduled_at=scheduled_at,
        scheduled_end_at=scheduled_at + timedelta(minutes=duration_minutes),
        duration_minutes=duration_minutes,
        total_amount=total_amount,
        currency="EUR",
        confirmed_at=None,
        rejected_at=None,
        cancelled_at=None,
        cancelled_by=None,
        cancellation_reason=None,
        mentor_joined_at=None,
        mentee_joined_at=None,
        started_at=None,
        completed_at=None,
        no_show_recorded_at=None,
        refund_tier=None,
        refund_amount=None,
        compensation_amount=None,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)
