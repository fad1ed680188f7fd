"""
Test Configuration and Fixtures

Every test gets a fresh in-memory database, a controllable clock and a
restaurant whose floor plan has a 4-seat table "T", a 2-seat table "t2"
and a wall.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEED_SAMPLE_DATA", "false")
os.environ.setdefault("ENABLE_SWEEPER", "false")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from tablebook.config import Settings
from tablebook.database import create_tables, make_engine, make_session_factory
from tablebook.layout import TableDirectory
from tablebook.lifecycle import BookingLifecycle
from tablebook.main import create_app
from tablebook.models import Restaurant
from tablebook.schemas import BookingCreate
from tablebook.store import BookingStore
from tablebook.sweeper import ExpirationSweeper

T0 = datetime(2025, 6, 1, 18, 0, tzinfo=timezone.utc)

LAYOUT = [
    {"id": "T", "type": "table", "x": 10, "y": 10, "seats": 4, "shape": "square", "label": "Window"},
    {"id": "t2", "type": "table", "x": 80, "y": 10, "seats": 2, "shape": "circle", "label": "2"},
    {"id": "w1", "type": "wall", "x": 0, "y": 0, "width": 200, "height": 5},
]

STAFF_TOKEN = "staff-token"
OWNER_TOKEN = "owner-token"
OTHER_TOKEN = "other-restaurant-token"


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


def add_restaurant(session_factory, name="Test Bistro", timezone="UTC", layout=None) -> int:
    with session_factory() as db:
        restaurant = Restaurant(name=name, timezone=timezone, layout=LAYOUT if layout is None else layout)
        db.add(restaurant)
        db.commit()
        return restaurant.id


@pytest.fixture
def restaurant_id(session_factory) -> int:
    return add_restaurant(session_factory)


@pytest.fixture
def store(session_factory) -> BookingStore:
    return BookingStore(session_factory)


@pytest.fixture
def lifecycle(store, session_factory, clock) -> BookingLifecycle:
    return BookingLifecycle(store, TableDirectory(session_factory), clock=clock)


@pytest.fixture
def sweeper(lifecycle) -> ExpirationSweeper:
    return ExpirationSweeper(lifecycle, interval=0.01)


def booking_request(**overrides) -> BookingCreate:
    data = {
        "table_id": "T",
        "guest_name": "Anna",
        "guest_phone": "+7 900 000 00 00",
        "guest_count": 2,
        "date_time": T0 + timedelta(hours=2),
    }
    data.update(overrides)
    return BookingCreate(**data)


@pytest.fixture
def make_booking(lifecycle, restaurant_id):
    """Create a booking in the test restaurant through the lifecycle."""
    def _make(**overrides):
        return lifecycle.create_booking(restaurant_id, booking_request(**overrides))
    return _make


@pytest.fixture
def client(engine, clock, restaurant_id):
    settings = Settings(
        database_url="sqlite://",
        staff_tokens={
            STAFF_TOKEN: {str(restaurant_id)},
            OWNER_TOKEN: {"*"},
            OTHER_TOKEN: {str(restaurant_id + 1000)},
        },
        seed_sample_data=False,
        enable_sweeper=False,
    )
    app = create_app(settings, bind=engine, clock=clock)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def staff_headers():
    return {"Authorization": f"Bearer {STAFF_TOKEN}"}
