"""In-process store for flights, bookings and timeline events.

All compound operations run under a single lock, which makes the status
compare-and-set and its companion event writes atomic.
"""

from typing import Dict, List, Optional, Tuple
from datetime import datetime
import threading
import uuid

from app.bookings import refcode, timeline
from app.bookings.access import is_visible_to, matches_query
from app.types import Booking, BookingEvent, BookingStatus, Flight
from app.utils.dates import ensure_utc, utc_now


class MemoryStore:
    def __init__(self, ref_prefix: str = "ACB", ref_max_attempts: int = 20):
        self.ref_prefix = ref_prefix
        self.ref_max_attempts = ref_max_attempts
        self._lock = threading.Lock()
        self._flights: List[Flight] = []
        self._bookings: Dict[str, Booking] = {}
        self._events: Dict[str, List[BookingEvent]] = {}

    def ping(self) -> bool:
        return True

    # Flights

    def add_flight(self, flight: Flight) -> None:
        with self._lock:
            self._flights.append(flight)

    def query_flights(self, origin: str, start: datetime, end: datetime,
                      destination: Optional[str] = None,
                      exclude_destination: Optional[str] = None,
                      limit: Optional[int] = None) -> List[Flight]:
        """Flights from origin departing in [start, end), ordered by departure."""
        start, end = ensure_utc(start), ensure_utc(end)
        with self._lock:
            hits = [
                f for f in self._flights
                if f.origin == origin
                and start <= ensure_utc(f.departure_datetime) < end
                and (destination is None or f.destination == destination)
                and (exclude_destination is None or f.destination != exclude_destination)
            ]
        hits.sort(key=lambda f: ensure_utc(f.departure_datetime))
        return hits[:limit] if limit is not None else hits

    # Bookings

    def get_booking(self, ref_id: str) -> Optional[Booking]:
        with self._lock:
            return self._bookings.get(ref_id)

    def insert_booking(self, origin: str, destination: str, pieces: int,
                       weight_kg: int, user_id: Optional[str] = None) -> Booking:
        now = utc_now()
        with self._lock:
            ref_id = refcode.claim_ref_id(
                lambda candidate: candidate not in self._bookings,
                prefix=self.ref_prefix,
                max_attempts=self.ref_max_attempts,
            )
            booking = Booking(
                id=str(uuid.uuid4()),
                ref_id=ref_id,
                origin=origin,
                destination=destination,
                pieces=pieces,
                weight_kg=weight_kg,
                user_id=user_id,
                status=BookingStatus.BOOKED,
                created_at=now,
                updated_at=now,
            )
            self._bookings[ref_id] = booking
            self._events[booking.id] = [timeline.created_event(booking)]
            return booking

    def transition_status(self, ref_id: str, expected: BookingStatus, new: BookingStatus,
                          location: Optional[str] = None, notes: Optional[str] = None,
                          flight_id: Optional[str] = None) -> Optional[Booking]:
        """Set status only if it still equals expected. Returns None when it does not."""
        with self._lock:
            current = self._bookings.get(ref_id)
            if current is None or current.status != expected:
                return None
            updated = current.model_copy(update={"status": new, "updated_at": utc_now()})
            events = list(self._events.get(updated.id, []))
            events.append(timeline.status_event(updated, new, seq=len(events), location=location))
            if notes or flight_id:
                idx, latest = self._latest(events)
                events[idx] = timeline.patch_event(latest, notes, flight_id)
            # commit only once every piece has been built
            self._events[updated.id] = events
            self._bookings[ref_id] = updated
            return updated

    def list_bookings(self, user_id: Optional[str] = None, query: Optional[str] = None,
                      limit: int = 10) -> List[Booking]:
        with self._lock:
            rows = list(self._bookings.values())
        # newest insert first among equal timestamps
        rows = [b for b in reversed(rows) if is_visible_to(b, user_id) and matches_query(b, query)]
        rows.sort(key=lambda b: b.created_at, reverse=True)
        return rows[:limit]

    # Events

    @staticmethod
    def _latest(events: List[BookingEvent]) -> Tuple[int, BookingEvent]:
        idx = max(range(len(events)), key=lambda i: (events[i].created_at, events[i].seq))
        return idx, events[idx]

    def latest_event(self, booking_id: str) -> Optional[BookingEvent]:
        with self._lock:
            events = self._events.get(booking_id)
            if not events:
                return None
            return self._latest(events)[1]

    def update_event(self, booking_id: str, event_id: str, notes: Optional[str] = None,
                     flight_id: Optional[str] = None) -> Optional[BookingEvent]:
        with self._lock:
            events = self._events.get(booking_id, [])
            for i, ev in enumerate(events):
                if ev.id == event_id:
                    events[i] = timeline.patch_event(ev, notes, flight_id)
                    return events[i]
        return None

    def list_events(self, booking_id: str) -> List[BookingEvent]:
        with self._lock:
            return sorted(self._events.get(booking_id, []), key=lambda e: e.seq)
