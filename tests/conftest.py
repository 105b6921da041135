import os
import sys
from datetime import datetime, timezone
import itertools

import pytest

# Ensure project root is on sys.path so `import app` works in tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from app.store.memory import MemoryStore
from app.types import Flight


def at(day: str, hhmm: str) -> datetime:
    """UTC instant for 'YYYY-MM-DD' + 'HH:MM'."""
    return datetime.fromisoformat(f"{day}T{hhmm}:00").replace(tzinfo=timezone.utc)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def make_flight(store):
    """Add a flight to the store: make_flight('DEL', 'BOM', '06:00', '08:30')."""
    counter = itertools.count(1)

    def _make(origin, destination, dep, arr, day="2024-08-16", arr_day=None, number=None):
        n = next(counter)
        flight = Flight(
            id=f"f{n}",
            flight_number=number or f"XX{n:03d}",
            airline_name="Test Air",
            origin=origin,
            destination=destination,
            departure_datetime=at(day, dep),
            arrival_datetime=at(arr_day or day, arr),
        )
        store.add_flight(flight)
        return flight

    return _make
