"""Sample catalog for local runs and demos."""

from datetime import datetime, timezone
import uuid

from app.types import Flight

# (flight_number, airline, departure, arrival, origin, destination), all 2024-08-16 UTC
SAMPLE_FLIGHTS = [
    # Delhi to Mumbai
    ("AI101", "Air India", "06:00", "08:30", "DEL", "BOM"),
    ("6E202", "IndiGo", "09:15", "11:45", "DEL", "BOM"),
    ("SG303", "SpiceJet", "14:30", "17:00", "DEL", "BOM"),
    # Mumbai to Bangalore
    ("AI401", "Air India", "10:00", "11:45", "BOM", "BLR"),
    ("6E502", "IndiGo", "13:30", "15:15", "BOM", "BLR"),
    ("SG603", "SpiceJet", "18:45", "20:30", "BOM", "BLR"),
    # Delhi to Bangalore direct
    ("AI701", "Air India", "07:30", "10:15", "DEL", "BLR"),
    ("6E802", "IndiGo", "16:00", "18:45", "DEL", "BLR"),
    # Hyderabad connections
    ("AI901", "Air India", "08:00", "10:30", "DEL", "HYD"),
    ("6E902", "IndiGo", "12:00", "15:00", "HYD", "BLR"),
]

SAMPLE_DATE = "2024-08-16"


def _at(hhmm: str) -> datetime:
    return datetime.fromisoformat(f"{SAMPLE_DATE}T{hhmm}:00").replace(tzinfo=timezone.utc)


def sample_flights():
    return [
        Flight(
            id=str(uuid.uuid5(uuid.NAMESPACE_URL, f"flight/{number}/{SAMPLE_DATE}")),
            flight_number=number,
            airline_name=airline,
            departure_datetime=_at(dep),
            arrival_datetime=_at(arr),
            origin=origin,
            destination=destination,
        )
        for number, airline, dep, arr, origin, destination in SAMPLE_FLIGHTS
    ]


def seed_sample_flights(store) -> int:
    flights = sample_flights()
    for f in flights:
        store.add_flight(f)
    return len(flights)
