"""
In-Memory Repository

Backs the "memory" storage backend and the test suite. A single asyncio
lock serializes every mutation, which gives the accept-and-increment
operation the same indivisibility the MongoDB conditional updates give.
"""

import asyncio
from typing import Dict, Iterable, List, Optional

from hopper.exceptions import (
    DuplicateReferralError,
    DuplicateRequestError,
    InvalidTransitionError,
    MembershipNotFoundError,
    OverbookingError,
    RideNotFoundError,
)
from hopper.models.membership import ACTIVE_MEMBERSHIP_STATUSES, Membership, MembershipStatus
from hopper.models.profile import TRUST_SCORE_FLOOR, Profile, adjust_trust_score
from hopper.models.referral import Referral, ReferralStatus
from hopper.models.ride import Ride, RideStatus
from hopper.repositories.base import HopperRepository, status_values
from hopper.utils.timezone_utils import utc_now


class InMemoryRepository(HopperRepository):

    def __init__(self):
        self.rides: Dict[str, Ride] = {}
        self.memberships: Dict[str, Membership] = {}
        self.profiles: Dict[str, Profile] = {}
        self.referrals: Dict[str, Referral] = {}
        self._lock = asyncio.Lock()

    # Rides

    async def create_ride(self, ride: Ride) -> Ride:
        async with self._lock:
            self.rides[ride.ride_id] = ride.model_copy()
            return ride.model_copy()

    async def get_ride(self, ride_id: str) -> Optional[Ride]:
        ride = self.rides.get(ride_id)
        return ride.model_copy() if ride else None

    async def list_active_rides(self, date: Optional[str] = None) -> List[Ride]:
        rides = [
            r for r in self.rides.values()
            if r.status == RideStatus.ACTIVE and (date is None or r.date == date)
        ]
        rides.sort(key=lambda r: r.created_at)
        return [r.model_copy() for r in rides]

    async def list_rides_by_owner(
        self, owner_id: str, statuses: Optional[Iterable[str]] = None
    ) -> List[Ride]:
        allowed = status_values(statuses) if statuses is not None else None
        rides = [
            r for r in self.rides.values()
            if r.owner_id == owner_id and (allowed is None or r.status in allowed)
        ]
        rides.sort(key=lambda r: r.created_at)
        return [r.model_copy() for r in rides]

    async def transition_ride(
        self, ride_id: str, from_statuses: Iterable[str], to_status: str, **fields
    ) -> Optional[Ride]:
        async with self._lock:
            ride = self.rides.get(ride_id)
            if not ride or ride.status not in status_values(from_statuses):
                return None
            updated = ride.model_copy(update={"status": getattr(to_status, "value", to_status), **fields})
            self.rides[ride_id] = updated
            return updated.model_copy()

    # Memberships

    async def create_membership(self, membership: Membership) -> Membership:
        async with self._lock:
            for existing in self.memberships.values():
                if (
                    existing.ride_id == membership.ride_id
                    and existing.user_id == membership.user_id
                    and existing.status in ACTIVE_MEMBERSHIP_STATUSES
                ):
                    raise DuplicateRequestError(
                        "You already have an active request for this ride"
                    )
            self.memberships[membership.membership_id] = membership.model_copy()
            return membership.model_copy()

    async def get_membership(self, membership_id: str) -> Optional[Membership]:
        membership = self.memberships.get(membership_id)
        return membership.model_copy() if membership else None

    def _filter_memberships(self, key: str, value: str, statuses) -> List[Membership]:
        allowed = status_values(statuses) if statuses is not None else None
        found = [
            m for m in self.memberships.values()
            if getattr(m, key) == value and (allowed is None or m.status in allowed)
        ]
        found.sort(key=lambda m: m.joined_at)
        return [m.model_copy() for m in found]

    async def list_ride_memberships(
        self, ride_id: str, statuses: Optional[Iterable[str]] = None
    ) -> List[Membership]:
        return self._filter_memberships("ride_id", ride_id, statuses)

    async def list_user_memberships(
        self, user_id: str, statuses: Optional[Iterable[str]] = None
    ) -> List[Membership]:
        return self._filter_memberships("user_id", user_id, statuses)

    async def transition_membership(
        self, membership_id: str, from_statuses: Iterable[str], to_status: str
    ) -> Optional[Membership]:
        async with self._lock:
            membership = self.memberships.get(membership_id)
            if not membership or membership.status not in status_values(from_statuses):
                return None
            updated = membership.model_copy(
                update={"status": getattr(to_status, "value", to_status), "resolved_at": utc_now()}
            )
            self.memberships[membership_id] = updated
            return updated.model_copy()

    async def accept_membership(self, membership_id: str) -> Membership:
        async with self._lock:
            membership = self.memberships.get(membership_id)
            if not membership:
                raise MembershipNotFoundError(f"Membership {membership_id} not found")
            ride = self.rides.get(membership.ride_id)
            if not ride:
                raise RideNotFoundError(f"Ride {membership.ride_id} not found")

            if membership.status != MembershipStatus.PENDING:
                raise InvalidTransitionError(
                    f"Cannot accept a request that is {membership.status}"
                )
            # A full ride is reported as overbooking whatever its status
            if ride.is_full:
                raise OverbookingError(f"Ride {ride.ride_id} has no free seats")
            if ride.status != RideStatus.ACTIVE:
                raise InvalidTransitionError(f"Ride {ride.ride_id} is {ride.status}")

            self.rides[ride.ride_id] = ride.model_copy(
                update={"seats_taken": ride.seats_taken + 1}
            )
            accepted = membership.model_copy(
                update={"status": MembershipStatus.ACCEPTED.value, "resolved_at": utc_now()}
            )
            self.memberships[membership_id] = accepted
            return accepted.model_copy()

    async def release_seat(self, ride_id: str) -> Optional[Ride]:
        async with self._lock:
            ride = self.rides.get(ride_id)
            if not ride or ride.seats_taken <= 0:
                return None
            updated = ride.model_copy(update={"seats_taken": ride.seats_taken - 1})
            self.rides[ride_id] = updated
            return updated.model_copy()

    async def mark_no_show(self, membership_id: str) -> Optional[Membership]:
        async with self._lock:
            membership = self.memberships.get(membership_id)
            if not membership or membership.no_show_reported_at is not None:
                return None
            updated = membership.model_copy(update={"no_show_reported_at": utc_now()})
            self.memberships[membership_id] = updated
            return updated.model_copy()

    # Profiles

    async def create_profile(self, profile: Profile) -> Profile:
        async with self._lock:
            self.profiles[profile.user_id] = profile.model_copy()
            return profile.model_copy()

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        profile = self.profiles.get(user_id)
        return profile.model_copy() if profile else None

    async def get_profiles(self, user_ids: Iterable[str]) -> List[Profile]:
        return [self.profiles[uid].model_copy() for uid in user_ids if uid in self.profiles]

    async def adjust_trust_score(
        self, user_id: str, delta: float, floor: float = TRUST_SCORE_FLOOR
    ) -> Optional[Profile]:
        async with self._lock:
            profile = self.profiles.get(user_id)
            if not profile:
                return None
            updated = profile.model_copy(
                update={"trust_score": adjust_trust_score(profile.trust_score, delta, floor)}
            )
            self.profiles[user_id] = updated
            return updated.model_copy()

    async def increment_profile_stats(
        self, user_id: str, rides_completed: int = 0, no_show_count: int = 0, credits: int = 0
    ) -> Optional[Profile]:
        async with self._lock:
            profile = self.profiles.get(user_id)
            if not profile:
                return None
            updated = profile.model_copy(update={
                "rides_completed": profile.rides_completed + rides_completed,
                "no_show_count": profile.no_show_count + no_show_count,
                "credits": profile.credits + credits,
            })
            self.profiles[user_id] = updated
            return updated.model_copy()

    async def list_top_profiles(self, field: str, limit: int = 10) -> List[Profile]:
        ranked = sorted(self.profiles.values(), key=lambda p: getattr(p, field), reverse=True)
        return [p.model_copy() for p in ranked[:limit]]

    # Referrals

    async def create_referral(self, referral: Referral) -> Referral:
        async with self._lock:
            if any(r.referee_id == referral.referee_id for r in self.referrals.values()):
                raise DuplicateReferralError("This user was already referred")
            self.referrals[referral.referral_id] = referral.model_copy()
            return referral.model_copy()

    async def get_referral(self, referral_id: str) -> Optional[Referral]:
        referral = self.referrals.get(referral_id)
        return referral.model_copy() if referral else None

    async def get_referral_by_referee(self, referee_id: str) -> Optional[Referral]:
        for referral in self.referrals.values():
            if referral.referee_id == referee_id:
                return referral.model_copy()
        return None

    async def complete_referral(self, referral_id: str, **fields) -> Optional[Referral]:
        async with self._lock:
            referral = self.referrals.get(referral_id)
            if not referral or referral.status != ReferralStatus.PENDING:
                return None
            updated = referral.model_copy(
                update={"status": ReferralStatus.COMPLETED.value, **fields}
            )
            self.referrals[referral_id] = updated
            return updated.model_copy()

    async def list_referrals(
        self, referrer_id: Optional[str] = None, status: Optional[str] = None
    ) -> List[Referral]:
        found = [
            r for r in self.referrals.values()
            if (referrer_id is None or r.referrer_id == referrer_id)
            and (status is None or r.status == status)
        ]
        found.sort(key=lambda r: r.created_at)
        return [r.model_copy() for r in found]
