import pytest

from app.bookings.service import BookingService
from app.errors import NotFoundError, ValidationError
from app.types import BookingStatus, CallerContext, EventType, SelectedRoute


@pytest.fixture
def service(store):
    return BookingService(store)


ALICE = CallerContext(user_id="alice")
BOB = CallerContext(user_id="bob")


class TestCreateBooking:
    def test_anonymous_booking(self, service):
        booking = service.create_booking("DEL", "BOM", 3, 120)

        assert booking.status == BookingStatus.BOOKED
        assert booking.user_id is None
        assert booking.ref_id.startswith("ACB")

    def test_owner_taken_from_caller(self, service):
        assert service.create_booking("DEL", "BOM", 1, 5, caller=ALICE).user_id == "alice"

    @pytest.mark.parametrize("kwargs", [
        dict(origin=None, destination="BOM", pieces=1, weight_kg=1),
        dict(origin="DEL", destination="", pieces=1, weight_kg=1),
        dict(origin="DEL", destination="BOM", pieces=None, weight_kg=1),
        dict(origin="DEL", destination="BOM", pieces=1, weight_kg=0),
    ])
    def test_missing_fields(self, service, kwargs):
        with pytest.raises(ValidationError, match="Missing required fields"):
            service.create_booking(**kwargs)

    def test_negative_quantities(self, service):
        with pytest.raises(ValidationError, match="positive"):
            service.create_booking("DEL", "BOM", -1, 10)
        with pytest.raises(ValidationError, match="positive"):
            service.create_booking("DEL", "BOM", 1, -10)

    def test_selected_route_is_logged_not_stored(self, service, capsys):
        route = SelectedRoute(type="transit", flights=[{"id": "f1"}, {"id": "f2"}])
        booking = service.create_booking("DEL", "BLR", 1, 5, selected_route=route)

        out = capsys.readouterr().out
        assert "Selected transit route with 2 flight(s)" in out
        assert booking.ref_id in out


class TestHistory:
    def test_history_lists_events_in_order(self, service, store):
        booking = service.create_booking("DEL", "BOM", 1, 5)
        store.transition_status(booking.ref_id, BookingStatus.BOOKED, BookingStatus.DEPARTED)

        history = service.get_history(booking.ref_id)

        assert history["booking"].status == BookingStatus.DEPARTED
        assert [e.event_type for e in history["events"]] == [EventType.CREATED, EventType.DEPARTED]

    def test_other_users_booking_is_hidden(self, service):
        booking = service.create_booking("DEL", "BOM", 1, 5, caller=ALICE)

        with pytest.raises(NotFoundError):
            service.get_history(booking.ref_id, caller=BOB)
        with pytest.raises(NotFoundError):
            service.get_history(booking.ref_id)
        assert service.get_history(booking.ref_id, caller=ALICE)["booking"].ref_id == booking.ref_id

    def test_unknown_reference(self, service):
        with pytest.raises(NotFoundError):
            service.get_history("ACB000000")


class TestListBookings:
    def test_scoped_to_caller(self, service):
        shared = service.create_booking("DEL", "BOM", 1, 5)
        alices = service.create_booking("DEL", "HYD", 1, 5, caller=ALICE)
        service.create_booking("DEL", "BLR", 1, 5, caller=BOB)

        assert [b.ref_id for b in service.list_bookings(caller=ALICE)] == [alices.ref_id, shared.ref_id]
        assert [b.ref_id for b in service.list_bookings(caller=ALICE, query="hyd")] == [alices.ref_id]

    @pytest.mark.parametrize("limit", [0, 101])
    def test_limit_bounds(self, service, limit):
        with pytest.raises(ValidationError):
            service.list_bookings(limit=limit)
