from typing import Optional

from app.bookings import timeline
from app.bookings.access import is_visible_to
from app.errors import InvalidTransitionError, NotFoundError, StoreError, ValidationError
from app.obs.logger import log_event
from app.obs.metrics import inc_counter
from app.types import Booking, BookingStatus, CallerContext


class BookingLifecycleManager:
    """Moves bookings through BOOKED -> DEPARTED -> ARRIVED -> DELIVERED (or CANCELLED).

    The store applies the status change, its timeline event and any
    notes/flight backfill as one conditional write keyed on the status read
    here. When that write loses a race the booking is re-read and the
    transition re-validated against the stored status.
    """

    def __init__(self, store, max_attempts: int = 3):
        self.store = store
        self.max_attempts = max_attempts

    def advance(self, ref_id: str, requested_status: str, location: Optional[str] = None,
                notes: Optional[str] = None, flight_ref: Optional[str] = None,
                caller: Optional[CallerContext] = None) -> Booking:
        if not ref_id or not requested_status:
            raise ValidationError("Booking reference and status are required")
        try:
            requested = BookingStatus(requested_status)
        except ValueError:
            raise ValidationError("Invalid status")

        caller = caller or CallerContext()
        for _ in range(self.max_attempts):
            booking = self.store.get_booking(ref_id)
            if booking is None or not is_visible_to(booking, caller.user_id):
                raise NotFoundError("Booking not found")

            self.check_transition(booking.status, requested, ref_id)

            updated = self.store.transition_status(
                ref_id,
                expected=booking.status,
                new=requested,
                location=location,
                notes=notes,
                flight_id=flight_ref,
            )
            if updated is not None:
                break
        else:
            raise StoreError(f"Booking {ref_id} is being updated concurrently")

        inc_counter("booking_transitions_total", {"status": requested.value})
        log_event(
            "booking_status_updated",
            ref_id=ref_id,
            from_status=booking.status.value,
            to_status=requested.value,
        )
        return updated

    def check_transition(self, current: BookingStatus, requested: BookingStatus,
                         ref_id: Optional[str] = None) -> None:
        if not timeline.is_allowed(current, requested):
            self._reject(current, requested, ref_id)
            raise InvalidTransitionError(current.value, requested.value)
        # Kept separate from TRANSITIONS so a table edit cannot re-enable it.
        if requested == BookingStatus.CANCELLED and current in timeline.NON_CANCELLABLE:
            self._reject(current, requested, ref_id)
            raise InvalidTransitionError(
                current.value, requested.value,
                "Cannot cancel booking that has already arrived",
            )

    @staticmethod
    def _reject(current: BookingStatus, requested: BookingStatus, ref_id: Optional[str]) -> None:
        log_event(
            "booking_transition_rejected",
            level="WARNING",
            ref_id=ref_id,
            from_status=current.value,
            to_status=requested.value,
        )
