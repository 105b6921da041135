"""Redis-backed store.

Layout:
  flight:{id}                  JSON Flight
  flights:origin:{origin}      ZSET of flight ids scored by departure epoch
  booking:{ref_id}             JSON Booking
  bookings:index               ZSET of ref_ids scored by creation epoch
  booking_events:{booking_id}  LIST of JSON BookingEvent, index == seq

Multi-key writes use WATCH/MULTI/EXEC so a concurrent writer aborts the
transaction instead of overwriting it.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional
import uuid

import redis

from app.bookings import refcode, timeline
from app.bookings.access import is_visible_to, matches_query
from app.config import settings
from app.errors import StoreError
from app.types import Booking, BookingEvent, BookingStatus, Flight
from app.utils.dates import ensure_utc, utc_now


@contextmanager
def _store_errors(op: str) -> Iterator[None]:
    try:
        yield
    except redis.RedisError as e:
        raise StoreError(f"Store operation '{op}' failed: {e}") from e


class RedisStore:
    BOOKINGS_INDEX = "bookings:index"

    def __init__(self, redis_url: str = None, client: redis.Redis = None,
                 ref_prefix: str = None, ref_max_attempts: int = None):
        self.redis_url = redis_url or settings.REDIS_URL
        self.client = client or redis.from_url(self.redis_url, decode_responses=True)
        self.ref_prefix = ref_prefix or settings.REF_PREFIX
        self.ref_max_attempts = ref_max_attempts or settings.REF_MAX_ATTEMPTS

    @staticmethod
    def _flight_key(flight_id: str) -> str:
        return f"flight:{flight_id}"

    @staticmethod
    def _origin_key(origin: str) -> str:
        return f"flights:origin:{origin}"

    @staticmethod
    def _booking_key(ref_id: str) -> str:
        return f"booking:{ref_id}"

    @staticmethod
    def _events_key(booking_id: str) -> str:
        return f"booking_events:{booking_id}"

    def ping(self) -> bool:
        with _store_errors("ping"):
            return bool(self.client.ping())

    # Flights

    def add_flight(self, flight: Flight) -> None:
        score = ensure_utc(flight.departure_datetime).timestamp()
        with _store_errors("add_flight"):
            pipe = self.client.pipeline()
            pipe.set(self._flight_key(flight.id), flight.model_dump_json())
            pipe.zadd(self._origin_key(flight.origin), {flight.id: score})
            pipe.execute()

    def query_flights(self, origin: str, start: datetime, end: datetime,
                      destination: Optional[str] = None,
                      exclude_destination: Optional[str] = None,
                      limit: Optional[int] = None) -> List[Flight]:
        lo = ensure_utc(start).timestamp()
        hi = ensure_utc(end).timestamp()
        with _store_errors("query_flights"):
            ids = self.client.zrangebyscore(self._origin_key(origin), lo, f"({hi}")
            if not ids:
                return []
            raws = self.client.mget([self._flight_key(i) for i in ids])
        flights = []
        for raw in raws:
            if not raw:
                continue
            f = Flight.model_validate_json(raw)
            if destination is not None and f.destination != destination:
                continue
            if exclude_destination is not None and f.destination == exclude_destination:
                continue
            flights.append(f)
            if limit is not None and len(flights) >= limit:
                break
        return flights

    # Bookings

    def get_booking(self, ref_id: str) -> Optional[Booking]:
        with _store_errors("get_booking"):
            raw = self.client.get(self._booking_key(ref_id))
        return Booking.model_validate_json(raw) if raw else None

    def insert_booking(self, origin: str, destination: str, pieces: int,
                       weight_kg: int, user_id: Optional[str] = None) -> Booking:
        now = utc_now()
        draft = Booking(
            id=str(uuid.uuid4()),
            ref_id="",
            origin=origin,
            destination=destination,
            pieces=pieces,
            weight_kg=weight_kg,
            user_id=user_id,
            status=BookingStatus.BOOKED,
            created_at=now,
            updated_at=now,
        )
        created: List[Booking] = []

        def try_claim(candidate: str) -> bool:
            booking = draft.model_copy(update={"ref_id": candidate})
            key = self._booking_key(candidate)
            with self.client.pipeline() as pipe:
                try:
                    pipe.watch(key)
                    if pipe.exists(key):
                        pipe.unwatch()
                        return False
                    pipe.multi()
                    pipe.set(key, booking.model_dump_json())
                    pipe.rpush(self._events_key(booking.id),
                               timeline.created_event(booking).model_dump_json())
                    pipe.zadd(self.BOOKINGS_INDEX, {candidate: now.timestamp()})
                    pipe.execute()
                except redis.WatchError:
                    return False
            created.append(booking)
            return True

        with _store_errors("insert_booking"):
            refcode.claim_ref_id(try_claim, prefix=self.ref_prefix,
                                 max_attempts=self.ref_max_attempts)
        return created[0]

    def transition_status(self, ref_id: str, expected: BookingStatus, new: BookingStatus,
                          location: Optional[str] = None, notes: Optional[str] = None,
                          flight_id: Optional[str] = None) -> Optional[Booking]:
        """Set status only if it still equals expected. Returns None when it does not."""
        key = self._booking_key(ref_id)
        with _store_errors("transition_status"), self.client.pipeline() as pipe:
            try:
                pipe.watch(key)
                raw = pipe.get(key)
                if not raw:
                    pipe.unwatch()
                    return None
                current = Booking.model_validate_json(raw)
                if current.status != expected:
                    pipe.unwatch()
                    return None
                events_key = self._events_key(current.id)
                pipe.watch(events_key)
                seq = pipe.llen(events_key)

                updated = current.model_copy(update={"status": new, "updated_at": utc_now()})
                event = timeline.status_event(updated, new, seq=seq, location=location)
                if notes or flight_id:
                    # the event appended here is the latest one for the booking
                    event = timeline.patch_event(event, notes, flight_id)

                pipe.multi()
                pipe.set(key, updated.model_dump_json())
                pipe.rpush(events_key, event.model_dump_json())
                pipe.execute()
                return updated
            except redis.WatchError:
                return None

    def list_bookings(self, user_id: Optional[str] = None, query: Optional[str] = None,
                      limit: int = 10) -> List[Booking]:
        with _store_errors("list_bookings"):
            refs = self.client.zrevrange(self.BOOKINGS_INDEX, 0, -1)
            if not refs:
                return []
            raws = self.client.mget([self._booking_key(r) for r in refs])
        rows = []
        for raw in raws:
            if not raw:
                continue
            b = Booking.model_validate_json(raw)
            if is_visible_to(b, user_id) and matches_query(b, query):
                rows.append(b)
                if len(rows) >= limit:
                    break
        return rows

    # Events

    def latest_event(self, booking_id: str) -> Optional[BookingEvent]:
        with _store_errors("latest_event"):
            raw = self.client.lindex(self._events_key(booking_id), -1)
        return BookingEvent.model_validate_json(raw) if raw else None

    def update_event(self, booking_id: str, event_id: str, notes: Optional[str] = None,
                     flight_id: Optional[str] = None) -> Optional[BookingEvent]:
        key = self._events_key(booking_id)
        with _store_errors("update_event"), self.client.pipeline() as pipe:
            try:
                pipe.watch(key)
                for idx, raw in enumerate(pipe.lrange(key, 0, -1)):
                    ev = BookingEvent.model_validate_json(raw)
                    if ev.id != event_id:
                        continue
                    patched = timeline.patch_event(ev, notes, flight_id)
                    pipe.multi()
                    pipe.lset(key, idx, patched.model_dump_json())
                    pipe.execute()
                    return patched
                pipe.unwatch()
                return None
            except redis.WatchError:
                raise StoreError(f"Event {event_id} changed concurrently")

    def list_events(self, booking_id: str) -> List[BookingEvent]:
        with _store_errors("list_events"):
            raws = self.client.lrange(self._events_key(booking_id), 0, -1)
        return [BookingEvent.model_validate_json(r) for r in raws]
