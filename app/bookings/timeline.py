"""Booking status machine and timeline-event policy.

Both store backends build and patch events through these helpers so the
in-process and Redis timelines stay identical.
"""

from typing import Dict, FrozenSet, Optional
import uuid

from app.types import Booking, BookingEvent, BookingStatus, EventType
from app.utils.dates import utc_now


TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.BOOKED: frozenset({BookingStatus.DEPARTED, BookingStatus.CANCELLED}),
    BookingStatus.DEPARTED: frozenset({BookingStatus.ARRIVED}),
    BookingStatus.ARRIVED: frozenset({BookingStatus.DELIVERED}),
    BookingStatus.DELIVERED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

# Statuses from which a shipment can no longer be cancelled, regardless of TRANSITIONS.
NON_CANCELLABLE: FrozenSet[BookingStatus] = frozenset({BookingStatus.ARRIVED, BookingStatus.DELIVERED})


def is_allowed(current: BookingStatus, requested: BookingStatus) -> bool:
    return requested in TRANSITIONS.get(current, frozenset())


def default_location(booking: Booking, status: BookingStatus) -> Optional[str]:
    if status == BookingStatus.DEPARTED:
        return booking.origin
    if status in (BookingStatus.ARRIVED, BookingStatus.DELIVERED):
        return booking.destination
    return None


def created_event(booking: Booking) -> BookingEvent:
    return BookingEvent(
        id=str(uuid.uuid4()),
        booking_id=booking.id,
        seq=0,
        event_type=EventType.CREATED,
        location=booking.origin,
        created_at=booking.created_at,
    )


def status_event(booking: Booking, status: BookingStatus, seq: int,
                 location: Optional[str] = None) -> BookingEvent:
    return BookingEvent(
        id=str(uuid.uuid4()),
        booking_id=booking.id,
        seq=seq,
        event_type=EventType(status.value),
        location=location if location else default_location(booking, status),
        created_at=utc_now(),
    )


def patch_event(event: BookingEvent, notes: Optional[str] = None,
                flight_id: Optional[str] = None) -> BookingEvent:
    """Backfill notes/flight reference; absent values keep what is already there."""
    return event.model_copy(update={
        "notes": notes or event.notes,
        "flight_id": flight_id or event.flight_id,
    })
