import sys
import os

# Add the current directory to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest
from datetime import time
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base_class import Base
# Import all models to ensure their tables are created
from app.models.counsellor import Counsellor, CounsellorAvailability
from app.models.counselling_booking import CounsellingBooking  # noqa: F401
from app.utils.tz import today_local
from app.utils.week import weekdays_ahead


# Create an in-memory SQLite database for testing
@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def TestingSessionLocal(engine):
    """Create a session factory for the test database."""
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


# Override the database dependency to use our test database
@pytest.fixture
def override_get_db(TestingSessionLocal):
    """Override the database dependency to use our test database."""
    def _override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()
    return _override_get_db


@pytest.fixture
def db_session(TestingSessionLocal):
    """Create a database session for each test."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(override_get_db, TestingSessionLocal):
    """Create a test client for API tests."""
    from fastapi.testclient import TestClient
    from app.main import app
    from app.db import get_db, get_session_factory

    # Override the database dependency (background tasks use the factory)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal

    with TestClient(app) as client:
        yield client

    # Clear overrides after test
    app.dependency_overrides.clear()


@pytest.fixture
def sent_emails(monkeypatch):
    """Capture outgoing emails instead of logging/sending them."""
    outbox = []

    def _fake_send(subject, to, html, text=None, attachments=()):
        outbox.append(
            {"subject": subject, "to": list(to), "html": html, "attachments": list(attachments)}
        )

    monkeypatch.setattr("app.services.booking_notify.send_email", _fake_send)
    return outbox


def _weekday_windows(start, end):
    return [
        CounsellorAvailability(weekday=wd, starts_at=start, ends_at=end)
        for wd in range(5)
    ]


@pytest.fixture
def test_counsellor(db_session):
    """Counsellor offering both modalities, 09:00-17:00 on weekdays."""
    counsellor = Counsellor(
        id="counsellor-1",
        name="Pastor John Smith",
        title="Senior Pastoral Counsellor",
        specialization=["Marriage & Family", "Faith & Spiritual"],
        bio="Pastoral counselling.",
        email="john@example.com",
        phone="+233 50 123 4567",
        is_online=True,
        is_in_person=True,
        years_of_experience=15,
        rating=4.9,
        review_count=127,
    )
    counsellor.availability = _weekday_windows(time(9, 0), time(17, 0))
    db_session.add(counsellor)
    db_session.commit()
    db_session.refresh(counsellor)
    return counsellor


@pytest.fixture
def online_only_counsellor(db_session):
    """Counsellor offering online sessions only, 10:00-12:00 on weekdays."""
    counsellor = Counsellor(
        id="counsellor-2",
        name="Dr. Sarah Johnson",
        title="Licensed Clinical Psychologist",
        specialization=["Anxiety & Stress"],
        email="sarah@example.com",
        is_online=True,
        is_in_person=False,
    )
    counsellor.availability = _weekday_windows(time(10, 0), time(12, 0))
    db_session.add(counsellor)
    db_session.commit()
    db_session.refresh(counsellor)
    return counsellor


@pytest.fixture
def booking_day():
    """First bookable weekday (tomorrow or later) in the centre's timezone."""
    return next(weekdays_ahead(today_local(), 14))


@pytest.fixture
def booking_payload(booking_day):
    """Factory for a complete camelCase booking payload."""
    def _payload(**overrides):
        data = {
            "firstName": "Ama",
            "lastName": "Mensah",
            "email": "ama@example.com",
            "phone": "+233 24 000 0000",
            "country": "GH",
            "city": "Accra",
            "counsellorId": "counsellor-1",
            "bookingType": "in-person",
            "preferredDate": booking_day.isoformat(),
            "preferredTime": "10:00",
            "sessionDuration": 60,
            "topic": "Anxiety & Stress",
            "notes": "",
        }
        data.update(overrides)
        return data
    return _payload
