"""
Test configuration and fixtures.

Tests run against TEST_DATABASE_URL when set (use a PostgreSQL URL to exercise
the exclusion constraints), otherwise against an in-memory SQLite database.
"""
import os
import pytest
from typing import Generator
from uuid import UUID
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

# Set test database URL before importing app
TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite://")
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

from src.main import app
from src.db.base import Base
from src.db.session import get_db
import src.models  # noqa: F401
from src.models.venue import Venue, VenueTable, Seat
from src.services.venue_hours import RowSource, WeeklyHoursRow, upsert_venue_hours


if TEST_DATABASE_URL.startswith("sqlite"):
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    engine = create_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh schema and a database session for the test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create test client with database session override."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


def all_day_rows(source: RowSource = RowSource.GOOGLE) -> list:
    return [
        WeeklyHoursRow(day_of_week=day, is_closed=False, open_time="00:00", close_time="23:59", source=source)
        for day in range(7)
    ]


@pytest.fixture
def venue(db: Session) -> Venue:
    """
    A New York venue open around the clock with:
    - "Bar": individually booked table with 2 seats
    - "Big table": group table with 4 seats
    """
    venue = Venue(name="Test Cafe", timezone="America/New_York", hours_source="google", status="ACTIVE")
    db.add(venue)
    db.flush()

    bar = VenueTable(venue_id=venue.id, name="Bar", seat_count=2, booking_mode="individual", is_active=True)
    big = VenueTable(venue_id=venue.id, name="Big table", seat_count=4, booking_mode="group", is_active=True)
    db.add_all([bar, big])
    db.flush()

    for position in range(2):
        db.add(Seat(table_id=bar.id, label=f"Bar {position + 1}", position=position, is_active=True))
    for position in range(4):
        db.add(Seat(table_id=big.id, label=f"Big {position + 1}", position=position, is_active=True))

    upsert_venue_hours(db, venue.id, all_day_rows())
    db.commit()
    db.refresh(venue)
    return venue


def _table(venue: Venue, name: str) -> VenueTable:
    return next(t for t in venue.tables if t.name == name)


@pytest.fixture
def bar_table(venue: Venue) -> VenueTable:
    return _table(venue, "Bar")


@pytest.fixture
def group_table(venue: Venue) -> VenueTable:
    return _table(venue, "Big table")


@pytest.fixture
def bar_seat_ids(bar_table: VenueTable) -> list[UUID]:
    return [seat.id for seat in bar_table.seats]


@pytest.fixture
def postgres_db(db: Session) -> Session:
    """The db session, skipping the test unless it runs on PostgreSQL."""
    if db.get_bind().dialect.name != "postgresql":
        pytest.skip("exclusion constraints need PostgreSQL (set TEST_DATABASE_URL)")
    return db
