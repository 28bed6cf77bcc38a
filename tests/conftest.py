"""Shared fixtures: an in-memory database per test plus a seeded mentor/mentee pair."""

import os
from datetime import time
from decimal import Decimal

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mentorly.database import Base
from mentorly.models import AvailabilityRule, MentorProfile, User


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def create_user(db, name: str, email: str, role: str) -> User:
    user = User(name=name, email=email, role=role, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def mentor(db):
    user = create_user(db, "Maya Mentor", "maya@mentorly.test", "mentor")
    db.add(MentorProfile(
        user_id=user.id,
        hourly_rate=Decimal("30.00"),
        currency="EUR",
        timezone="UTC",
        free_trial_available=True,
        free_trial_duration=30,
    ))
    # 09:00-17:00 every day of the week
    for day in range(7):
        db.add(AvailabilityRule(
            mentor_id=user.id,
            day_of_week=day,
            start_time=time(9, 0),
            end_time=time(17, 0),
        ))
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def mentee(db):
    return create_user(db, "Leo Learner", "leo@mentorly.test", "mentee")


@pytest.fixture
def other_mentee(db):
    return create_user(db, "Ana Learner", "ana@mentorly.test", "mentee")


@pytest.fixture
def client(engine):
    from fastapi.testclient import TestClient

    from mentorly.database import get_db
    from mentorly.main import app

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
