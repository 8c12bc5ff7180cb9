"""
Shared fixtures: stores on temporary files and a service with a fixed clock.
"""

import pendulum
import pytest

from slotbook.adapters.json_store import JsonBookingStore
from slotbook.adapters.sql_store import SqlBookingStore
from slotbook.services.booking_service import BookingService

# Sunday evening before the Monday used throughout the tests
FIXED_NOW = pendulum.parse("2024-11-24 18:00", tz="America/New_York")


@pytest.fixture
def sql_store(tmp_path):
    store = SqlBookingStore(f"sqlite:///{tmp_path / 'bookings.db'}", seed_demo=True)
    with store:
        yield store


@pytest.fixture
def json_store(tmp_path):
    store = JsonBookingStore(tmp_path / "bookings.json", seed_demo=True)
    with store:
        yield store


@pytest.fixture(params=["sql", "json"])
def store(request, tmp_path):
    """Each store backend, opened and seeded with the demo venue."""
    if request.param == "sql":
        store = SqlBookingStore(f"sqlite:///{tmp_path / 'bookings.db'}", seed_demo=True)
    else:
        store = JsonBookingStore(tmp_path / "bookings.json", seed_demo=True)

    with store:
        yield store


@pytest.fixture
def service(store):
    return BookingService(store, clock=lambda: FIXED_NOW)


@pytest.fixture
def fixed_now():
    return FIXED_NOW
