# mentorly/services/availability_resolver.py
"""
Availability Resolver

Turns a mentor's recurring weekly pattern plus the sessions already on the
calendar into concrete bookable slots. The result is a deterministic function
of its inputs: no database access, no randomness.

Days of the week follow the convention used by mentor profiles:
0 = Sunday, 1 = Monday, ... 6 = Saturday.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, UTC
from typing import Dict, Iterable, Iterator, List, Optional, Tuple
from zoneinfo import ZoneInfo

from mentorly.config import settings
from mentorly.enums import SessionStatus, BLOCKING_STATUSES
from mentorly.exceptions import (
    InvalidAvailabilityError,
    InvalidDurationError,
    InvalidRangeError,
)
from mentorly.utils.timeutils import ensure_utc, resolve_now


def day_of_week(day: date) -> int:
    """Python's Monday=0 weekday mapped to the Sunday=0 convention."""
    return (day.weekday() + 1) % 7


@dataclass(frozen=True, order=True)
class AvailabilityInterval:
    day_of_week: int
    start_time: time
    end_time: time

    def __post_init__(self):
        if not 0 <= self.day_of_week <= 6:
            raise InvalidAvailabilityError(
                "day_of_week must be between 0 (Sunday) and 6 (Saturday)",
                details={"day_of_week": self.day_of_week},
            )
        if self.start_time >= self.end_time:
            raise InvalidAvailabilityError(
                "Availability interval must start before it ends",
                details={
                    "day_of_week": self.day_of_week,
                    "start_time": self.start_time.isoformat(),
                    "end_time": self.end_time.isoformat(),
                },
            )


class WeeklyAvailabilityPattern:
    """Immutable snapshot of a mentor's recurring intervals, sorted per day."""

    def __init__(self, intervals: Iterable[AvailabilityInterval] = ()):
        by_day: Dict[int, List[AvailabilityInterval]] = defaultdict(list)
        for interval in intervals:
            by_day[interval.day_of_week].append(interval)

        self._days: Dict[int, Tuple[AvailabilityInterval, ...]] = {}
        for dow, day_intervals in by_day.items():
            day_intervals.sort()
            for previous, current in zip(day_intervals, day_intervals[1:]):
                if current.start_time < previous.end_time:
                    raise InvalidAvailabilityError(
                        "Availability intervals overlap on the same day",
                        details={
                            "day_of_week": dow,
                            "first": [previous.start_time.isoformat(), previous.end_time.isoformat()],
                            "second": [current.start_time.isoformat(), current.end_time.isoformat()],
                        },
                    )
            self._days[dow] = tuple(day_intervals)

    @classmethod
    def from_rules(cls, rules) -> "WeeklyAvailabilityPattern":
        """Build from rows exposing day_of_week/start_time/end_time."""
        return cls(
            AvailabilityInterval(rule.day_of_week, rule.start_time, rule.end_time)
            for rule in rules
        )

    def for_day(self, dow: int) -> Tuple[AvailabilityInterval, ...]:
        return self._days.get(dow, ())

    def __iter__(self) -> Iterator[AvailabilityInterval]:
        for dow in sorted(self._days):
            yield from self._days[dow]

    def __len__(self) -> int:
        return sum(len(intervals) for intervals in self._days.values())

    def __bool__(self) -> bool:
        return bool(self._days)


@dataclass(frozen=True)
class BookingSlot:
    date: date
    start_time: time
    end_time: time
    duration_minutes: int
    is_available: bool
    starts_at: datetime = field(compare=False)
    ends_at: datetime = field(compare=False)

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
            "duration_minutes": self.duration_minutes,
            "is_available": self.is_available,
        }


@dataclass(frozen=True)
class DayAvailability:
    date: date
    slots: Tuple[BookingSlot, ...]

    @property
    def has_availability(self) -> bool:
        return any(slot.is_available for slot in self.slots)


def _busy_periods(existing_sessions) -> List[Tuple[datetime, datetime]]:
    busy = []
    for session in existing_sessions:
        if SessionStatus(session.status) not in BLOCKING_STATUSES:
            continue
        busy.append((ensure_utc(session.scheduled_at), ensure_utc(session.scheduled_end_at)))
    return busy


def _overlaps(start: datetime, end: datetime, busy: List[Tuple[datetime, datetime]]) -> bool:
    return any(start < busy_end and busy_start < end for busy_start, busy_end in busy)


def _local_to_utc(wall: datetime, zone: ZoneInfo) -> Optional[datetime]:
    """UTC instant of a naive wall-clock time, or None if the clock skips it."""
    instant = wall.replace(tzinfo=zone).astimezone(UTC)
    if instant.astimezone(zone).replace(tzinfo=None) != wall:
        return None
    return instant


def resolve_slots(
    pattern: WeeklyAvailabilityPattern,
    existing_sessions,
    range_start: date,
    range_end: date,
    duration_minutes: int,
    *,
    now: Optional[datetime] = None,
    tz: str = "UTC",
    granularity_minutes: Optional[int] = None,
) -> List[BookingSlot]:
    """
    Resolve bookable slots for every day in ``[range_start, range_end]``.

    Args:
        pattern: Mentor's weekly availability snapshot
        existing_sessions: Sessions on the mentor's calendar (any status;
            only PENDING_CONFIRMATION, CONFIRMED and IN_PROGRESS block)
        range_start: First day, inclusive
        range_end: Last day, inclusive
        duration_minutes: Requested session length
        now: Reference time; slots starting before it are dropped
        tz: IANA timezone the pattern's wall-clock times are expressed in
        granularity_minutes: Step between candidate starts

    Returns:
        Slots ordered by (date, start_time)

    Raises:
        InvalidRangeError: If range_end is before range_start
        InvalidDurationError: If duration_minutes is not positive
    """
    if range_end < range_start:
        raise InvalidRangeError(
            "Range end must not be before range start",
            details={"range_start": range_start.isoformat(), "range_end": range_end.isoformat()},
        )
    if duration_minutes is None or duration_minutes <= 0:
        raise InvalidDurationError(
            "Session duration must be positive",
            details={"duration_minutes": duration_minutes},
        )
    step_minutes = granularity_minutes or settings.SLOT_GRANULARITY_MINUTES
    if step_minutes <= 0:
        raise InvalidDurationError(
            "Slot granularity must be positive",
            details={"granularity_minutes": step_minutes},
        )

    now = resolve_now(now)
    zone = ZoneInfo(tz)
    busy = _busy_periods(existing_sessions)
    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=step_minutes)

    slots: List[BookingSlot] = []
    day = range_start
    while day <= range_end:
        for interval in pattern.for_day(day_of_week(day)):
            wall = datetime.combine(day, interval.start_time)
            wall_end = datetime.combine(day, interval.end_time)
            interval_end = wall_end.replace(tzinfo=zone).astimezone(UTC)
            while wall < wall_end:
                starts_at = _local_to_utc(wall, zone)
                # Length is measured in real time, so clock changes never stretch a slot.
                ends_at = starts_at + duration if starts_at is not None else None
                if ends_at is not None and ends_at <= interval_end and starts_at >= now:
                    slots.append(BookingSlot(
                        date=day,
                        start_time=wall.time(),
                        end_time=ends_at.astimezone(zone).time(),
                        duration_minutes=duration_minutes,
                        is_available=not _overlaps(starts_at, ends_at, busy),
                        starts_at=starts_at,
                        ends_at=ends_at,
                    ))
                wall += step
        day += timedelta(days=1)

    slots.sort(key=lambda slot: (slot.date, slot.start_time))
    return slots


def find_slot(
    pattern: WeeklyAvailabilityPattern,
    existing_sessions,
    day: date,
    start_time: time,
    duration_minutes: int,
    **kwargs,
) -> Optional[BookingSlot]:
    """The resolved slot for one (day, start_time), or None if the pattern has none."""
    for slot in resolve_slots(pattern, existing_sessions, day, day, duration_minutes, **kwargs):
        if slot.start_time == start_time:
            return slot
    return None


def group_by_day(slots: Iterable[BookingSlot], range_start: date, range_end: date) -> List[DayAvailability]:
    by_day: Dict[date, List[BookingSlot]] = defaultdict(list)
    for slot in slots:
        by_day[slot.date].append(slot)

    days = []
    day = range_start
    while day <= range_end:
        days.append(DayAvailability(date=day, slots=tuple(by_day.get(day, ()))))
        day += timedelta(days=1)
    return days
