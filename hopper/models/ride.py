"""
Ride Model

Defines the hopper (shared ride) schema for persistence.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hopper.config import settings
from hopper.utils.timezone_utils import utc_now


class RideStatus(str, Enum):
    """Status of a hopper."""

    ACTIVE = "active"  # Open for join requests
    LOCKED = "locked"  # Host started the trip
    COMPLETED = "completed"  # Normal finish
    CANCELLED = "cancelled"  # Terminal from any non-completed state


class RideDraft(BaseModel):
    """
    A proposed ride, as typed by the user before it is created.

    Fields are deliberately loose strings; the matchmaking service
    validates them and raises a domain ValidationError.
    """

    pickup_location: str = Field(..., description="Free-text pickup location")
    drop_location: str = Field(..., description="Free-text drop location")
    date: str = Field(..., description="Ride date (YYYY-MM-DD)")
    departure_time: str = Field(..., description="Departure time (HH:MM)")
    flexibility_minutes: int = Field(
        default_factory=lambda: settings.default_flexibility_minutes,
        description="± minutes around departure_time that still match",
    )


class RideCreate(RideDraft):
    """Data required to create a new hopper."""

    seats_total: int = Field(
        default_factory=lambda: settings.default_seats_total, ge=2, le=8
    )
    estimated_fare: Optional[float] = Field(None, ge=0)


class Ride(BaseModel):
    """
    Ride model.

    Fields:
    - ride_id: Unique UUID for the ride
    - owner_id: Host who created the ride
    - pickup_location / drop_location: Free-text locations
    - date: Ride date (YYYY-MM-DD)
    - departure_time: HH:MM
    - flexibility_minutes: Host's ± window around departure_time
    - seats_total: Seats in the vehicle, host included
    - seats_taken: Occupied seats (host + accepted members)
    - status: active -> locked -> completed, or cancelled
    - locked_at / completed_at / cancelled_at: Transition timestamps
    """

    ride_id: str = Field(..., description="Unique ride ID")
    owner_id: str = Field(..., description="Host user ID")
    pickup_location: str
    drop_location: str
    date: str
    departure_time: str
    flexibility_minutes: int = Field(default=30, ge=0)
    seats_total: int = Field(..., ge=1)
    seats_taken: int = Field(default=1, ge=0)
    status: RideStatus = Field(default=RideStatus.ACTIVE)
    estimated_fare: Optional[float] = None
    created_at: datetime = Field(default_factory=utc_now)
    locked_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    model_config = ConfigDict(use_enum_values=True)

    @property
    def seats_available(self) -> int:
        return max(0, self.seats_total - self.seats_taken)

    @property
    def is_full(self) -> bool:
        return self.seats_taken >= self.seats_total
