from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

from app.config import settings
from app.errors import CargoError
from app.bookings.lifecycle import BookingLifecycleManager
from app.bookings.service import BookingService
from app.routes.finder import RouteFinder
from app.store.factory import create_store
from app.store.seed import seed_sample_flights
from app.types import (
    CallerContext,
    CreateBookingRequest,
    RouteSearchRequest,
    StatusUpdateRequest,
)
from app.obs.middleware import ObservabilityMiddleware
from app.obs.metrics import get_metrics_snapshot
from app.obs.logger import log_event

load_dotenv()


def get_caller(authorization: Optional[str] = Header(None)) -> CallerContext:
    """Identity comes pre-verified from the gateway; the bearer token is the user id."""
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
        if token:
            return CallerContext(user_id=token)
    return CallerContext()


def create_app(store=None):
    @asynccontextmanager
    async def lifespan(api: FastAPI):
        log_event("startup", app_env=settings.APP_ENV, backend=settings.STORE_BACKEND)
        api.state.store = store or create_store(settings)
        if settings.SEED_SAMPLE_FLIGHTS:
            count = seed_sample_flights(api.state.store)
            log_event("catalog_seeded", flights=count)

        api.state.route_finder = RouteFinder(api.state.store)
        api.state.lifecycle = BookingLifecycleManager(api.state.store)
        api.state.bookings = BookingService(api.state.store)

        yield

        log_event("shutdown")

    api = FastAPI(
        title="Cargo Booking & Tracking",
        version="1.0.0",
        lifespan=lifespan,
    )

    @api.exception_handler(CargoError)
    async def cargo_error_handler(request: Request, exc: CargoError):
        level = "ERROR" if exc.status_code >= 500 else "INFO"
        log_event("request_failed", level=level, route=request.url.path,
                  status=exc.status_code, error=exc.message)
        return JSONResponse(exc.to_payload(), status_code=exc.status_code)

    @api.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return JSONResponse({"error": f"Invalid request body: {detail}"}, status_code=400)

    @api.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        log_event("unhandled_error", level="ERROR", route=request.url.path,
                  error=f"{type(exc).__name__}: {exc}")
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    @api.get("/")
    def root():
        return {
            "service": "Cargo Booking & Tracking",
            "version": "1.0.0",
            "status": "running",
        }

    @api.get("/health")
    def health(request: Request):
        try:
            ok = request.app.state.store.ping()
        except CargoError:
            ok = False
        status_code = 200 if ok else 503
        return JSONResponse(
            {"status": "healthy" if ok else "degraded", "service": "cargo-booking"},
            status_code=status_code,
        )

    @api.get("/metrics")
    def metrics():
        return get_metrics_snapshot()

    @api.post("/routes/search")
    def search_routes(body: RouteSearchRequest, request: Request):
        routes = request.app.state.route_finder.find_routes(
            body.origin, body.destination, body.departure_date
        )
        return {"routes": routes}

    @api.post("/bookings", status_code=201)
    def create_booking(body: CreateBookingRequest, request: Request,
                       caller: CallerContext = Depends(get_caller)):
        booking = request.app.state.bookings.create_booking(
            origin=body.origin,
            destination=body.destination,
            pieces=body.pieces,
            weight_kg=body.weight_kg,
            caller=caller,
            selected_route=body.selected_route,
        )
        return {
            "ref_id": booking.ref_id,
            "id": booking.id,
            "status": booking.status,
            "message": "Booking created successfully",
        }

    @api.get("/bookings")
    def list_bookings(request: Request, q: Optional[str] = None, limit: int = 10,
                      caller: CallerContext = Depends(get_caller)):
        rows = request.app.state.bookings.list_bookings(
            caller=caller, query=q, limit=limit
        )
        return {"bookings": rows}

    @api.post("/bookings/status")
    def update_booking_status(body: StatusUpdateRequest, request: Request,
                              caller: CallerContext = Depends(get_caller)):
        booking = request.app.state.lifecycle.advance(
            body.ref_id,
            body.status,
            location=body.location,
            notes=body.notes,
            flight_ref=body.flight_id,
            caller=caller,
        )
        return {"message": "Booking status updated successfully", "booking": booking}

    @api.get("/bookings/{ref_id}")
    def booking_history(ref_id: str, request: Request,
                        caller: CallerContext = Depends(get_caller)):
        return request.app.state.bookings.get_history(ref_id, caller=caller)

    # Apply middleware
    return ObservabilityMiddleware(api)


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8001,
        reload=True,
        log_level="info"
    )
