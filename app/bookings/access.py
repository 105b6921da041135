from typing import Optional

from app.types import Booking


def is_visible_to(booking: Booking, user_id: Optional[str]) -> bool:
    """Anonymous bookings are shared; owned bookings are visible to their owner only."""
    return booking.user_id is None or booking.user_id == user_id


def matches_query(booking: Booking, query: Optional[str]) -> bool:
    if not query:
        return True
    q = query.strip().lower()
    return any(q in field.lower() for field in (booking.ref_id, booking.origin, booking.destination))
