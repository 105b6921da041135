"""
Route search: direct and one-stop itineraries, layover policy and ranking.
"""

import pytest
from unittest.mock import Mock

from app.errors import StoreError, ValidationError
from app.routes.finder import RouteFinder
from app.store.seed import seed_sample_flights


@pytest.fixture
def finder(store):
    return RouteFinder(store, max_workers=1)


class TestValidation:
    @pytest.mark.parametrize("origin,destination,date", [
        ("", "BOM", "2024-08-16"),
        ("DEL", None, "2024-08-16"),
        ("DEL", "BOM", ""),
        ("   ", "BOM", "2024-08-16"),
    ])
    def test_missing_inputs_rejected(self, finder, origin, destination, date):
        with pytest.raises(ValidationError):
            finder.find_routes(origin, destination, date)

    def test_unparseable_date_rejected(self, finder):
        with pytest.raises(ValidationError):
            finder.find_routes("DEL", "BOM", "16/08/2024")

    def test_unknown_airports_give_empty_result(self, finder):
        assert finder.find_routes("XXX", "YYY", "2024-08-16") == []


class TestDirectRoutes:
    def test_two_directs_keep_scan_order_on_equal_duration(self, finder, make_flight):
        early = make_flight("DEL", "BOM", "06:00", "08:30")
        late = make_flight("DEL", "BOM", "09:15", "11:45")

        routes = finder.find_routes("DEL", "BOM", "2024-08-16")

        assert [r.type for r in routes] == ["direct", "direct"]
        assert [r.flights[0].id for r in routes] == [early.id, late.id]
        assert all(r.total_duration == "2h 30m" for r in routes)
        assert all(r.total_duration_minutes == 150 for r in routes)

    def test_only_flights_inside_the_day_window(self, finder, make_flight):
        make_flight("DEL", "BOM", "23:30", "01:00", day="2024-08-15", arr_day="2024-08-16")
        inside = make_flight("DEL", "BOM", "00:00", "02:00")
        make_flight("DEL", "BOM", "00:00", "02:00", day="2024-08-17")

        routes = finder.find_routes("DEL", "BOM", "2024-08-16")

        assert [r.flights[0].id for r in routes] == [inside.id]


class TestTransitRoutes:
    def test_valid_connection_is_returned(self, finder, make_flight):
        first = make_flight("DEL", "BOM", "06:00", "08:30")
        second = make_flight("BOM", "BLR", "10:45", "12:30")

        routes = finder.find_routes("DEL", "BLR", "2024-08-16")

        assert len(routes) == 1
        route = routes[0]
        assert route.type == "transit"
        assert [f.id for f in route.flights] == [first.id, second.id]
        assert route.total_duration == "6h 30m"
        assert route.total_duration_minutes == 390

    def test_short_layover_is_excluded(self, finder, make_flight):
        make_flight("DEL", "BOM", "06:00", "08:30")
        make_flight("BOM", "BLR", "09:00", "10:45")  # 30m layover

        assert finder.find_routes("DEL", "BLR", "2024-08-16") == []

    def test_exactly_two_hour_layover_is_accepted(self, finder, make_flight):
        make_flight("DEL", "BOM", "06:00", "08:30")
        make_flight("BOM", "BLR", "10:30", "12:00")

        routes = finder.find_routes("DEL", "BLR", "2024-08-16")
        assert len(routes) == 1

    def test_connection_on_following_day_is_found(self, finder, make_flight):
        make_flight("DEL", "BOM", "20:00", "22:00")
        make_flight("BOM", "BLR", "07:00", "09:00", day="2024-08-17")

        routes = finder.find_routes("DEL", "BLR", "2024-08-16")

        assert len(routes) == 1
        assert routes[0].total_duration == "13h 0m"

    def test_connection_beyond_two_days_is_not_searched(self, finder, make_flight):
        make_flight("DEL", "BOM", "20:00", "22:00")
        make_flight("BOM", "BLR", "22:00", "23:30", day="2024-08-18")

        assert finder.find_routes("DEL", "BLR", "2024-08-16") == []

    def test_second_hop_scan_capped_before_layover_filter(self, finder, make_flight):
        make_flight("DEL", "BOM", "06:00", "08:30")
        make_flight("BOM", "BLR", "08:45", "10:00")
        make_flight("BOM", "BLR", "09:00", "10:15")
        make_flight("BOM", "BLR", "09:30", "10:45")
        make_flight("BOM", "BLR", "11:00", "12:15")  # valid layover but fourth in scan

        assert finder.find_routes("DEL", "BLR", "2024-08-16") == []

    def test_custom_minimum_layover(self, store, make_flight):
        make_flight("DEL", "BOM", "06:00", "08:30")
        make_flight("BOM", "BLR", "09:00", "10:45")

        finder = RouteFinder(store, min_layover_minutes=30, max_workers=1)
        assert len(finder.find_routes("DEL", "BLR", "2024-08-16")) == 1


class TestRanking:
    def test_sample_catalog_delhi_to_bangalore(self, store):
        seed_sample_flights(store)
        finder = RouteFinder(store, max_workers=1)

        routes = finder.find_routes("DEL", "BLR", "2024-08-16")

        summary = [(r.type, [f.flight_number for f in r.flights], r.total_duration) for r in routes]
        assert summary == [
            ("direct", ["AI701"], "2h 45m"),
            ("direct", ["6E802"], "2h 45m"),
            ("transit", ["AI101", "6E502"], "9h 15m"),
            ("transit", ["6E202", "SG603"], "11h 15m"),
            ("transit", ["AI101", "SG603"], "14h 30m"),
        ]

    def test_output_sorted_and_direct_wins_ties(self, finder, make_flight):
        make_flight("DEL", "BOM", "06:00", "08:00")
        make_flight("BOM", "BLR", "10:00", "11:00")   # transit 5h 0m
        direct = make_flight("DEL", "BLR", "12:00", "17:00")  # direct 5h 0m
        make_flight("DEL", "BLR", "13:00", "14:00")   # direct 1h 0m

        routes = finder.find_routes("DEL", "BLR", "2024-08-16")

        minutes = [r.total_duration_minutes for r in routes]
        assert minutes == sorted(minutes)
        assert [r.type for r in routes] == ["direct", "direct", "transit"]
        assert routes[1].flights[0].id == direct.id

    def test_parallel_second_hop_scan_matches_sequential(self, store):
        seed_sample_flights(store)
        sequential = RouteFinder(store, max_workers=1).find_routes("DEL", "BLR", "2024-08-16")
        parallel = RouteFinder(store, max_workers=4).find_routes("DEL", "BLR", "2024-08-16")

        assert [[f.id for f in r.flights] for r in parallel] == \
               [[f.id for f in r.flights] for r in sequential]


def test_store_failure_propagates():
    store = Mock()
    store.query_flights.side_effect = StoreError("store down")
    finder = RouteFinder(store, max_workers=1)

    with pytest.raises(StoreError):
        finder.find_routes("DEL", "BOM", "2024-08-16")
