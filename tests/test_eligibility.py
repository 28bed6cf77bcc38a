from datetime import datetime, timedelta, UTC

import pytest

from mentorly.enums import ParticipantRole, RefundTier, SessionStatus, UrgencyLevel
from mentorly.services import eligibility

from helpers import make_session

START = datetime(2030, 1, 10, 14, 0, tzinfo=UTC)


def test_hours_until_is_fractional():
    assert eligibility.hours_until(START, START - timedelta(minutes=90)) == 1.5
    assert eligibility.hours_until(START, START + timedelta(hours=2)) == -2


@pytest.mark.parametrize("offset,expected", [
    (timedelta(minutes=-16), False),
    (timedelta(minutes=-15), True),
    (timedelta(minutes=45), True),
    (timedelta(minutes=90), True),   # scheduled end + 30 min
    (timedelta(minutes=91), False),
])
def test_mentee_join_window(offset, expected):
    session = make_session(START)
    assert eligibility.can_join(session, START + offset) is expected


@pytest.mark.parametrize("offset,expected", [
    (timedelta(minutes=-6), False),
    (timedelta(minutes=-5), True),
    (timedelta(minutes=30), True),
    (timedelta(minutes=31), False),
])
def test_mentor_join_window_is_stricter(offset, expected):
    session = make_session(START)
    assert eligibility.can_join(session, START + offset, ParticipantRole.MENTOR) is expected


def test_only_confirmed_sessions_can_be_joined():
    session = make_session(START, SessionStatus.PENDING_CONFIRMATION)
    assert eligibility.can_join(session, START) is False


@pytest.mark.parametrize("status,offset,expected", [
    (SessionStatus.PENDING_CONFIRMATION, timedelta(hours=-1), True),
    (SessionStatus.CONFIRMED, timedelta(seconds=-1), True),
    (SessionStatus.CONFIRMED, timedelta(0), False),
    (SessionStatus.IN_PROGRESS, timedelta(hours=-1), False),
    (SessionStatus.COMPLETED, timedelta(hours=-1), False),
])
def test_can_cancel(status, offset, expected):
    assert eligibility.can_cancel(make_session(START, status), START + offset) is expected


@pytest.mark.parametrize("hours_before,tier", [
    (30, RefundTier.FULL),
    (24.01, RefundTier.FULL),
    (24.5, RefundTier.FULL),
    (24 + 1 / 60, RefundTier.FULL),
    (24, RefundTier.PARTIAL_50),
    (10, RefundTier.PARTIAL_50),
    (2.5, RefundTier.PARTIAL_50),
    (2.01, RefundTier.PARTIAL_50),
    (2, RefundTier.NONE),
    (1, RefundTier.NONE),
])
def test_refund_tier_boundaries(hours_before, tier):
    now = START - timedelta(hours=hours_before)
    assert eligibility.refund_tier(make_session(START), now) == tier


def test_refund_tier_never_becomes_more_generous_as_start_approaches():
    session = make_session(START)
    previous = None
    for minutes_before in range(48 * 60, -1, -5):
        tier = eligibility.refund_tier(session, START - timedelta(minutes=minutes_before))
        if previous is not None:
            assert tier.generosity <= previous.generosity
        previous = tier
    assert previous == RefundTier.NONE


def test_refund_tier_accepts_explicit_policy():
    now = START - timedelta(hours=30)
    tier = eligibility.refund_tier(make_session(START), now, full_refund_hours=48)
    assert tier == RefundTier.PARTIAL_50


@pytest.mark.parametrize("hours_before,urgency", [
    (0.5, UrgencyLevel.URGENT),
    (1, UrgencyLevel.WARNING),
    (23.9, UrgencyLevel.WARNING),
    (24, UrgencyLevel.NEUTRAL),
    (-1, UrgencyLevel.URGENT),
])
def test_countdown_urgency(hours_before, urgency):
    assert eligibility.countdown_urgency(START, START - timedelta(hours=hours_before)) == urgency


@pytest.mark.parametrize("remaining,label", [
    (timedelta(0), "Now"),
    (timedelta(minutes=-5), "Now"),
    (timedelta(minutes=12), "In 12 min"),
    (timedelta(hours=5), "In 5h"),
    (timedelta(hours=5, minutes=20), "In 5h 20min"),
    (timedelta(days=1), "In 1 day"),
    (timedelta(days=2, hours=3), "In 2 days 3h"),
])
def test_time_remaining_label(remaining, label):
    assert eligibility.time_remaining_label(START, START - remaining) == label


def test_no_show_waits_for_grace_period():
    session = make_session(START)
    assert eligibility.no_show_candidate(session, START + timedelta(minutes=14)) is None


def test_no_show_checks_mentor_first():
    session = make_session(START)
    assert eligibility.no_show_candidate(session, START + timedelta(minutes=15)) == ParticipantRole.MENTOR


def test_no_show_mentee_when_mentor_joined():
    session = make_session(START, mentor_joined_at=START)
    assert eligibility.no_show_candidate(session, START + timedelta(minutes=20)) == ParticipantRole.MENTEE


def test_no_show_only_for_confirmed_sessions():
    session = make_session(START, SessionStatus.IN_PROGRESS)
    assert eligibility.no_show_candidate(session, START + timedelta(hours=1)) is None
