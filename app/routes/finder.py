"""Route search over the flight catalog.

Returns direct itineraries plus one-stop transit itineraries for a single
departure day, ranked by total door-to-door duration.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import List, Optional
import time

from app.config import settings
from app.errors import ValidationError
from app.obs.logger import log_event
from app.obs.metrics import record_timing
from app.types import Flight, RouteOption
from app.utils.dates import (
    day_window,
    duration_minutes,
    ensure_utc,
    format_duration_minutes,
    parse_iso_date,
)


def build_option(kind: str, flights: List[Flight]) -> Optional[RouteOption]:
    """RouteOption for the given legs, or None if the legs end before they start."""
    minutes = duration_minutes(flights[0].departure_datetime, flights[-1].arrival_datetime)
    if minutes < 0:
        return None
    return RouteOption(
        type=kind,
        flights=flights,
        total_duration=format_duration_minutes(minutes),
        total_duration_minutes=minutes,
    )


def layover(first: Flight, second: Flight) -> timedelta:
    return ensure_utc(second.departure_datetime) - ensure_utc(first.arrival_datetime)


class RouteFinder:
    def __init__(self, store, min_layover_minutes: int = None, transit_window_days: int = None,
                 second_hop_limit: int = None, max_workers: int = None):
        self.store = store
        self.min_layover = timedelta(minutes=min_layover_minutes if min_layover_minutes is not None
                                     else settings.MIN_LAYOVER_MINUTES)
        self.transit_window = timedelta(days=transit_window_days or settings.TRANSIT_WINDOW_DAYS)
        self.second_hop_limit = second_hop_limit or settings.SECOND_HOP_LIMIT
        self.max_workers = max_workers or settings.ROUTE_SEARCH_WORKERS

    def find_routes(self, origin: str, destination: str, departure_date) -> List[RouteOption]:
        if not origin or not destination or not departure_date \
                or not str(origin).strip() or not str(destination).strip() or not str(departure_date).strip():
            raise ValidationError("Missing required parameters")
        try:
            day = parse_iso_date(departure_date)
        except ValueError as e:
            raise ValidationError(str(e))

        started = time.monotonic()
        start, end = day_window(day)

        routes: List[RouteOption] = []
        for flight in self.store.query_flights(origin, start, end, destination=destination):
            option = build_option("direct", [flight])
            if option:
                routes.append(option)
        direct_count = len(routes)

        first_hops = self.store.query_flights(origin, start, end, exclude_destination=destination)
        for first, seconds in zip(first_hops, self._second_hops(first_hops, destination)):
            for second in seconds:
                if layover(first, second) < self.min_layover:
                    continue
                option = build_option("transit", [first, second])
                if option:
                    routes.append(option)

        # list.sort is stable: directs stay ahead of transits with the same duration
        routes.sort(key=lambda r: r.total_duration_minutes)

        elapsed_ms = (time.monotonic() - started) * 1000.0
        record_timing("route_search_ms", elapsed_ms)
        log_event(
            "routes_found",
            origin=origin,
            destination=destination,
            date=day.isoformat(),
            direct=direct_count,
            transit=len(routes) - direct_count,
            ms_total=round(elapsed_ms, 2),
        )
        return routes

    def _second_hops(self, first_hops: List[Flight], destination: str) -> List[List[Flight]]:
        """Connecting flights per first hop, in first-hop order."""
        def scan(first: Flight) -> List[Flight]:
            arrival = ensure_utc(first.arrival_datetime)
            return self.store.query_flights(
                first.destination,
                arrival,
                arrival + self.transit_window,
                destination=destination,
                limit=self.second_hop_limit,
            )

        if self.max_workers <= 1 or len(first_hops) <= 1:
            return [scan(f) for f in first_hops]
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(first_hops))) as pool:
            return list(pool.map(scan, first_hops))
