from typing import Any, Dict, List, Optional

from app.bookings.access import is_visible_to
from app.errors import NotFoundError, ValidationError
from app.obs.logger import log_event
from app.obs.metrics import inc_counter
from app.types import Booking, BookingEvent, CallerContext, SelectedRoute


class BookingService:
    """Booking creation and read-side lookups, scoped to the calling user."""

    MAX_LIST_LIMIT = 100

    def __init__(self, store):
        self.store = store

    def create_booking(self, origin: Optional[str], destination: Optional[str],
                       pieces: Optional[int], weight_kg: Optional[int],
                       caller: Optional[CallerContext] = None,
                       selected_route: Optional[SelectedRoute] = None) -> Booking:
        if not origin or not destination or not pieces or not weight_kg:
            raise ValidationError("Missing required fields")
        if pieces <= 0 or weight_kg <= 0:
            raise ValidationError("Pieces and weight must be positive numbers")

        caller = caller or CallerContext()
        booking = self.store.insert_booking(
            origin=origin.strip(),
            destination=destination.strip(),
            pieces=int(pieces),
            weight_kg=int(weight_kg),
            user_id=caller.user_id,
        )

        if selected_route:
            log_event(
                "route_selected",
                ref_id=booking.ref_id,
                summary=f"Selected {selected_route.type} route with {len(selected_route.flights)} flight(s)",
            )
        inc_counter("bookings_created_total")
        log_event("booking_created", ref_id=booking.ref_id, origin=booking.origin,
                  destination=booking.destination)
        return booking

    def get_booking(self, ref_id: str, caller: Optional[CallerContext] = None) -> Booking:
        if not ref_id:
            raise ValidationError("Booking reference is required")
        caller = caller or CallerContext()
        booking = self.store.get_booking(ref_id)
        if booking is None or not is_visible_to(booking, caller.user_id):
            raise NotFoundError("Booking not found")
        return booking

    def get_history(self, ref_id: str, caller: Optional[CallerContext] = None) -> Dict[str, Any]:
        booking = self.get_booking(ref_id, caller)
        events: List[BookingEvent] = self.store.list_events(booking.id)
        return {"booking": booking, "events": events}

    def list_bookings(self, caller: Optional[CallerContext] = None, query: Optional[str] = None,
                      limit: int = 10) -> List[Booking]:
        if limit < 1 or limit > self.MAX_LIST_LIMIT:
            raise ValidationError(f"limit must be between 1 and {self.MAX_LIST_LIMIT}")
        caller = caller or CallerContext()
        return self.store.list_bookings(user_id=caller.user_id, query=query, limit=limit)
