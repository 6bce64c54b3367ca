"""Membership Model - A user's request to join a hopper."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hopper.utils.timezone_utils import utc_now


class MembershipStatus(str, Enum):
    """Status of a join request."""
    PENDING = "pending"      # Waiting for the host
    ACCEPTED = "accepted"    # Seat reserved
    REJECTED = "rejected"    # Declined by the host (terminal)
    CANCELLED = "cancelled"  # Withdrawn by the requester (terminal)


ACTIVE_MEMBERSHIP_STATUSES = (MembershipStatus.PENDING.value, MembershipStatus.ACCEPTED.value)


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class Membership(BaseModel):
    """
    Membership of a user in a ride.

    A new record is created for every join request; records are never reused.
    """
    membership_id: str = Field(..., description="Unique membership ID")
    ride_id: str = Field(..., description="Ride being joined")
    user_id: str = Field(..., description="Requesting user")
    status: MembershipStatus = Field(default=MembershipStatus.PENDING)
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    joined_at: datetime = Field(default_factory=utc_now)
    resolved_at: Optional[datetime] = Field(None, description="When the request left pending")
    no_show_reported_at: Optional[datetime] = Field(None, description="Host reported a no-show")

    model_config = ConfigDict(use_enum_values=True)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_MEMBERSHIP_STATUSES
