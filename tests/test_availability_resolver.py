from datetime import date, datetime, time, timedelta, UTC
from types import SimpleNamespace

import pytest

from mentorly.enums import SessionStatus
from mentorly.exceptions import InvalidAvailabilityError, InvalidDurationError, InvalidRangeError
from mentorly.services.availability_resolver import (
    AvailabilityInterval,
    WeeklyAvailabilityPattern,
    day_of_week,
    find_slot,
    group_by_day,
    resolve_slots,
)

WEDNESDAY = date(2030, 1, 2)
EARLY = datetime(2029, 12, 1, tzinfo=UTC)


def _pattern(*intervals):
    return WeeklyAvailabilityPattern(AvailabilityInterval(*interval) for interval in intervals)


def _booked(start: datetime, minutes: int, status=SessionStatus.CONFIRMED):
    return SimpleNamespace(
        status=status,
        scheduled_at=start,
        scheduled_end_at=start + timedelta(minutes=minutes),
    )


def test_day_of_week_uses_sunday_zero():
    assert day_of_week(date(2029, 12, 30)) == 0  # Sunday
    assert day_of_week(WEDNESDAY) == 3
    assert day_of_week(date(2030, 1, 5)) == 6  # Saturday


def test_slots_lie_inside_intervals_and_have_exact_length():
    pattern = _pattern((3, time(9, 0), time(12, 0)), (3, time(14, 0), time(15, 30)))
    slots = resolve_slots(pattern, [], WEDNESDAY, WEDNESDAY, 60, now=EARLY)

    assert [slot.start_time for slot in slots] == [
        time(9, 0), time(9, 30), time(10, 0), time(10, 30), time(11, 0),
        time(14, 0), time(14, 30),
    ]
    intervals = pattern.for_day(3)
    for slot in slots:
        assert slot.ends_at - slot.starts_at == timedelta(minutes=60)
        assert any(
            interval.start_time <= slot.start_time and slot.end_time <= interval.end_time
            for interval in intervals
        )


def test_no_available_slot_overlaps_an_active_session():
    pattern = _pattern((3, time(9, 0), time(13, 0)))
    existing = [_booked(datetime(2030, 1, 2, 10, 0, tzinfo=UTC), 60)]

    slots = resolve_slots(pattern, existing, WEDNESDAY, WEDNESDAY, 60, now=EARLY)

    blocked = {slot.start_time for slot in slots if not slot.is_available}
    assert blocked == {time(9, 30), time(10, 0), time(10, 30)}
    for slot in slots:
        if slot.is_available:
            assert slot.ends_at <= existing[0].scheduled_at or slot.starts_at >= existing[0].scheduled_end_at


@pytest.mark.parametrize("status", [
    SessionStatus.CANCELLED_BY_MENTEE,
    SessionStatus.REJECTED_BY_MENTOR,
    SessionStatus.COMPLETED,
])
def test_terminal_sessions_do_not_block(status):
    pattern = _pattern((3, time(10, 0), time(11, 0)))
    existing = [_booked(datetime(2030, 1, 2, 10, 0, tzinfo=UTC), 60, status)]
    slots = resolve_slots(pattern, existing, WEDNESDAY, WEDNESDAY, 60, now=EARLY)
    assert [slot.is_available for slot in slots] == [True]


def test_naive_session_times_are_read_as_utc():
    pattern = _pattern((3, time(10, 0), time(11, 0)))
    existing = [_booked(datetime(2030, 1, 2, 10, 0), 60, SessionStatus.PENDING_CONFIRMATION)]
    slots = resolve_slots(pattern, existing, WEDNESDAY, WEDNESDAY, 60, now=EARLY)
    assert slots[0].is_available is False


def test_slots_before_now_are_dropped():
    pattern = _pattern((3, time(9, 0), time(12, 0)))
    now = datetime(2030, 1, 2, 10, 15, tzinfo=UTC)
    slots = resolve_slots(pattern, [], WEDNESDAY, WEDNESDAY, 30, now=now)
    assert slots[0].start_time == time(10, 30)


def test_pattern_in_mentor_timezone():
    pattern = _pattern((3, time(9, 0), time(10, 0)))
    slots = resolve_slots(pattern, [], WEDNESDAY, WEDNESDAY, 60, now=EARLY, tz="Europe/Berlin")
    assert len(slots) == 1
    assert slots[0].start_time == time(9, 0)
    assert slots[0].starts_at == datetime(2030, 1, 2, 8, 0, tzinfo=UTC)


def test_spring_forward_skips_missing_hour():
    spring_forward = date(2030, 3, 31)  # Sunday, Berlin jumps 02:00 -> 03:00
    pattern = _pattern((0, time(1, 0), time(4, 0)))
    slots = resolve_slots(
        pattern, [], spring_forward, spring_forward, 60,
        now=EARLY, tz="Europe/Berlin", granularity_minutes=30,
    )

    assert [slot.start_time for slot in slots] == [time(1, 0), time(1, 30), time(3, 0)]
    assert [slot.end_time for slot in slots] == [time(3, 0), time(3, 30), time(4, 0)]
    assert slots[0].starts_at == datetime(2030, 3, 31, 0, 0, tzinfo=UTC)
    for slot in slots:
        assert slot.ends_at - slot.starts_at == timedelta(minutes=60)


def test_fall_back_slots_keep_real_length():
    fall_back = date(2030, 10, 27)  # Sunday, Berlin repeats 02:00 -> 03:00
    pattern = _pattern((0, time(1, 0), time(4, 0)))
    slots = resolve_slots(
        pattern, [], fall_back, fall_back, 60,
        now=EARLY, tz="Europe/Berlin", granularity_minutes=30,
    )

    assert [slot.start_time for slot in slots] == [
        time(1, 0), time(1, 30), time(2, 0), time(2, 30), time(3, 0),
    ]
    for slot in slots:
        assert slot.ends_at - slot.starts_at == timedelta(minutes=60)
    two_am = find_slot(pattern, [], fall_back, time(2, 0), 60, now=EARLY, tz="Europe/Berlin")
    assert two_am.starts_at == datetime(2030, 10, 27, 0, 0, tzinfo=UTC)
    assert two_am.ends_at == datetime(2030, 10, 27, 1, 0, tzinfo=UTC)


def test_interval_shorter_than_duration_yields_nothing():
    pattern = _pattern((3, time(9, 0), time(9, 30)))
    assert resolve_slots(pattern, [], WEDNESDAY, WEDNESDAY, 60, now=EARLY) == []


def test_multi_day_range_is_sorted():
    pattern = _pattern((4, time(9, 0), time(10, 0)), (3, time(15, 0), time(16, 0)))
    slots = resolve_slots(pattern, [], WEDNESDAY, WEDNESDAY + timedelta(days=1), 60, now=EARLY)
    assert [(slot.date, slot.start_time) for slot in slots] == [
        (WEDNESDAY, time(15, 0)),
        (WEDNESDAY + timedelta(days=1), time(9, 0)),
    ]


def test_inverted_range_rejected():
    with pytest.raises(InvalidRangeError):
        resolve_slots(_pattern(), [], WEDNESDAY, WEDNESDAY - timedelta(days=1), 60)


@pytest.mark.parametrize("duration", [0, -15])
def test_non_positive_duration_rejected(duration):
    with pytest.raises(InvalidDurationError):
        resolve_slots(_pattern(), [], WEDNESDAY, WEDNESDAY, duration)


def test_interval_must_start_before_end():
    with pytest.raises(InvalidAvailabilityError):
        AvailabilityInterval(3, time(12, 0), time(9, 0))


def test_day_of_week_out_of_range():
    with pytest.raises(InvalidAvailabilityError):
        AvailabilityInterval(7, time(9, 0), time(10, 0))


def test_overlapping_intervals_rejected():
    with pytest.raises(InvalidAvailabilityError):
        _pattern((3, time(9, 0), time(12, 0)), (3, time(11, 0), time(13, 0)))


def test_touching_intervals_allowed():
    pattern = _pattern((3, time(9, 0), time(10, 0)), (3, time(10, 0), time(11, 0)))
    assert len(pattern) == 2


def test_find_slot_returns_matching_start():
    pattern = _pattern((3, time(9, 0), time(12, 0)))
    slot = find_slot(pattern, [], WEDNESDAY, time(10, 30), 60, now=EARLY)
    assert slot is not None
    assert slot.end_time == time(11, 30)
    assert find_slot(pattern, [], WEDNESDAY, time(11, 30), 60, now=EARLY) is None


def test_group_by_day_includes_empty_days():
    pattern = _pattern((3, time(9, 0), time(10, 0)))
    end = WEDNESDAY + timedelta(days=2)
    days = group_by_day(resolve_slots(pattern, [], WEDNESDAY, end, 60, now=EARLY), WEDNESDAY, end)
    assert [day.date for day in days] == [WEDNESDAY, WEDNESDAY + timedelta(days=1), end]
    assert [day.has_availability for day in days] == [True, False, False]


def test_slot_to_dict():
    pattern = _pattern((3, time(9, 0), time(10, 0)))
    slot = resolve_slots(pattern, [], WEDNESDAY, WEDNESDAY, 60, now=EARLY)[0]
    assert slot.to_dict() == {
        "date": "2030-01-02",
        "start_time": "09:00",
        "end_time": "10:00",
        "duration_minutes": 60,
        "is_available": True,
    }
