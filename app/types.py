from pydantic import BaseModel, Field
from typing import Optional, List, Literal, Dict, Any
from datetime import datetime
from enum import Enum


class BookingStatus(str, Enum):
    BOOKED = "BOOKED"
    DEPARTED = "DEPARTED"
    ARRIVED = "ARRIVED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class EventType(str, Enum):
    CREATED = "CREATED"
    DEPARTED = "DEPARTED"
    ARRIVED = "ARRIVED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class Flight(BaseModel):
    id: str
    flight_number: str
    airline_name: str
    origin: str = Field(..., description="Airport code")
    destination: str
    departure_datetime: datetime  # tz-aware UTC
    arrival_datetime: datetime


class RouteOption(BaseModel):
    type: Literal["direct", "transit"]
    flights: List[Flight]
    total_duration: str            # e.g., '6h 30m'
    total_duration_minutes: int


class Booking(BaseModel):
    id: str
    ref_id: str
    origin: str
    destination: str
    pieces: int = Field(..., gt=0)
    weight_kg: int = Field(..., gt=0)
    user_id: Optional[str] = None  # anonymous bookings allowed
    status: BookingStatus = BookingStatus.BOOKED
    created_at: datetime
    updated_at: datetime


class BookingEvent(BaseModel):
    id: str
    booking_id: str
    seq: int
    event_type: EventType
    location: Optional[str] = None
    notes: Optional[str] = None
    flight_id: Optional[str] = None
    created_at: datetime


class CallerContext(BaseModel):
    """Verified caller identity for a single request; user_id None means anonymous."""
    user_id: Optional[str] = None

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None


# Request bodies. Fields are optional here so that missing input is reported
# by the handlers with the same error payload as every other validation failure.

class RouteSearchRequest(BaseModel):
    origin: Optional[str] = None
    destination: Optional[str] = None
    departure_date: Optional[str] = Field(None, description="YYYY-MM-DD")


class SelectedRoute(BaseModel):
    type: Literal["direct", "transit"]
    flights: List[Dict[str, Any]] = []


class CreateBookingRequest(BaseModel):
    origin: Optional[str] = None
    destination: Optional[str] = None
    pieces: Optional[int] = None
    weight_kg: Optional[int] = None
    selected_route: Optional[SelectedRoute] = None


class StatusUpdateRequest(BaseModel):
    ref_id: Optional[str] = None
    status: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    flight_id: Optional[str] = None
