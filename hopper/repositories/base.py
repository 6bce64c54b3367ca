"""
Repository Interface

The services never talk to a database directly; they are handed a
HopperRepository. Conditional transitions return None when the
precondition no longer holds so callers can tell "lost the race" apart
from "not found".
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from hopper.models.membership import Membership
from hopper.models.profile import TRUST_SCORE_FLOOR, Profile
from hopper.models.referral import Referral
from hopper.models.ride import Ride


class HopperRepository(ABC):
    """Store for rides, memberships, profiles and referrals."""

    # =========================================================================
    # Rides
    # =========================================================================

    @abstractmethod
    async def create_ride(self, ride: Ride) -> Ride: ...

    @abstractmethod
    async def get_ride(self, ride_id: str) -> Optional[Ride]: ...

    @abstractmethod
    async def list_active_rides(self, date: Optional[str] = None) -> List[Ride]:
        """Active rides, optionally for one date, oldest first."""

    @abstractmethod
    async def list_rides_by_owner(
        self, owner_id: str, statuses: Optional[Iterable[str]] = None
    ) -> List[Ride]: ...

    @abstractmethod
    async def transition_ride(
        self, ride_id: str, from_statuses: Iterable[str], to_status: str, **fields
    ) -> Optional[Ride]:
        """Set status (and extra fields) only if the current status is in from_statuses."""

    # =========================================================================
    # Memberships
    # =========================================================================

    @abstractmethod
    async def create_membership(self, membership: Membership) -> Membership:
        """Insert a new request; raises DuplicateRequestError if an active one exists."""

    @abstractmethod
    async def get_membership(self, membership_id: str) -> Optional[Membership]: ...

    @abstractmethod
    async def list_ride_memberships(
        self, ride_id: str, statuses: Optional[Iterable[str]] = None
    ) -> List[Membership]: ...

    @abstractmethod
    async def list_user_memberships(
        self, user_id: str, statuses: Optional[Iterable[str]] = None
    ) -> List[Membership]: ...

    @abstractmethod
    async def transition_membership(
        self, membership_id: str, from_statuses: Iterable[str], to_status: str
    ) -> Optional[Membership]: ...

    @abstractmethod
    async def accept_membership(self, membership_id: str) -> Membership:
        """
        Atomic join: move a pending membership to accepted and take a seat.

        Raises OverbookingError if the ride has no free seat and
        InvalidTransitionError if the membership is no longer pending or the
        ride is no longer active.
        """

    @abstractmethod
    async def release_seat(self, ride_id: str) -> Optional[Ride]: ...

    @abstractmethod
    async def mark_no_show(self, membership_id: str) -> Optional[Membership]:
        """Stamp no_show_reported_at once; None if missing or already reported."""

    # =========================================================================
    # Profiles
    # =========================================================================

    @abstractmethod
    async def create_profile(self, profile: Profile) -> Profile: ...

    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[Profile]: ...

    @abstractmethod
    async def get_profiles(self, user_ids: Iterable[str]) -> List[Profile]: ...

    @abstractmethod
    async def adjust_trust_score(
        self, user_id: str, delta: float, floor: float = TRUST_SCORE_FLOOR
    ) -> Optional[Profile]:
        """Atomically set trust_score = max(floor, trust_score + delta); None if no profile."""

    @abstractmethod
    async def increment_profile_stats(
        self, user_id: str, rides_completed: int = 0, no_show_count: int = 0, credits: int = 0
    ) -> Optional[Profile]: ...

    @abstractmethod
    async def list_top_profiles(self, field: str, limit: int = 10) -> List[Profile]:
        """Profiles ordered by field (trust_score or rides_completed), highest first."""

    # =========================================================================
    # Referrals
    # =========================================================================

    @abstractmethod
    async def create_referral(self, referral: Referral) -> Referral:
        """Insert a referral; raises DuplicateReferralError if the referee already has one."""

    @abstractmethod
    async def get_referral(self, referral_id: str) -> Optional[Referral]: ...

    @abstractmethod
    async def get_referral_by_referee(self, referee_id: str) -> Optional[Referral]: ...

    @abstractmethod
    async def complete_referral(self, referral_id: str, **fields) -> Optional[Referral]:
        """Move pending -> completed; None if it was not pending."""

    @abstractmethod
    async def list_referrals(
        self, referrer_id: Optional[str] = None, status: Optional[str] = None
    ) -> List[Referral]: ...


def status_values(statuses: Iterable) -> set:
    """Normalize enum members and plain strings to a set of raw values."""
    return {getattr(s, "value", s) for s in statuses}
