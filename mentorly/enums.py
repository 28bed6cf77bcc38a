# mentorly/enums.py
import enum


class SessionStatus(str, enum.Enum):
    PENDING_CONFIRMATION = "PENDING_CONFIRMATION"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED_BY_MENTOR = "CANCELLED_BY_MENTOR"
    CANCELLED_BY_MENTEE = "CANCELLED_BY_MENTEE"
    NO_SHOW_MENTOR = "NO_SHOW_MENTOR"
    NO_SHOW_MENTEE = "NO_SHOW_MENTEE"
    REJECTED_BY_MENTOR = "REJECTED_BY_MENTOR"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_scheduled(self) -> bool:
        """Folded 'SCHEDULED' view: booked but not yet started."""
        return self in SCHEDULED_STATUSES


TERMINAL_STATUSES = frozenset({
    SessionStatus.COMPLETED,
    SessionStatus.CANCELLED_BY_MENTOR,
    SessionStatus.CANCELLED_BY_MENTEE,
    SessionStatus.NO_SHOW_MENTOR,
    SessionStatus.NO_SHOW_MENTEE,
    SessionStatus.REJECTED_BY_MENTOR,
})

SCHEDULED_STATUSES = frozenset({
    SessionStatus.PENDING_CONFIRMATION,
    SessionStatus.CONFIRMED,
})

# Statuses that occupy the mentor's calendar.
BLOCKING_STATUSES = frozenset({
    SessionStatus.PENDING_CONFIRMATION,
    SessionStatus.CONFIRMED,
    SessionStatus.IN_PROGRESS,
})


class SessionEvent(str, enum.Enum):
    CONFIRM = "confirm"
    REJECT = "reject"
    CANCEL_BY_MENTEE = "cancel_by_mentee"
    CANCEL_BY_MENTOR = "cancel_by_mentor"
    START = "start"
    COMPLETE = "complete"
    NO_SHOW_MENTOR = "no_show_mentor"
    NO_SHOW_MENTEE = "no_show_mentee"


class ParticipantRole(str, enum.Enum):
    MENTOR = "mentor"
    MENTEE = "mentee"


class RefundTier(str, enum.Enum):
    FULL_PLUS_COMPENSATION = "FULL_PLUS_COMPENSATION"
    FULL = "FULL"
    PARTIAL_50 = "PARTIAL_50"
    NONE = "NONE"

    @property
    def generosity(self) -> int:
        return _TIER_GENEROSITY[self]


_TIER_GENEROSITY = {
    RefundTier.FULL_PLUS_COMPENSATION: 3,
    RefundTier.FULL: 2,
    RefundTier.PARTIAL_50: 1,
    RefundTier.NONE: 0,
}


class UrgencyLevel(str, enum.Enum):
    NEUTRAL = "neutral"
    WARNING = "warning"
    URGENT = "urgent"
