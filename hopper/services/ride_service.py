"""
Ride Service

Hopper creation, browsing and the host-driven lifecycle:

    active --lock--> locked --complete--> completed
    active --complete--> completed
    active | locked --cancel--> cancelled

Completion rewards every accepted member; cancelling after the ride was
locked costs the host trust.
"""

import logging
import uuid
from typing import Dict, List, Optional, Set

from hopper.config import settings
from hopper.exceptions import (
    InvalidTransitionError,
    NotAuthorizedError,
    ProfileNotFoundError,
    RideNotFoundError,
    ValidationError,
)
from hopper.models.membership import MembershipStatus
from hopper.models.profile import Profile
from hopper.models.ride import Ride, RideCreate, RideDraft, RideStatus
from hopper.repositories import HopperRepository, get_repository
from hopper.services.matchmaking_service import (
    MatchmakingService,
    normalize_date,
    normalize_location,
    time_to_minutes,
    validate_draft,
)
from hopper.services.realtime_service import RealtimeService
from hopper.services.trust_service import TrustService
from hopper.utils.timezone_utils import utc_now

logger = logging.getLogger(__name__)


RIDE_TRANSITIONS: Dict[str, Set[str]] = {
    RideStatus.ACTIVE.value: {
        RideStatus.LOCKED.value,
        RideStatus.COMPLETED.value,
        RideStatus.CANCELLED.value,
    },
    RideStatus.LOCKED.value: {RideStatus.COMPLETED.value, RideStatus.CANCELLED.value},
    RideStatus.COMPLETED.value: set(),
    RideStatus.CANCELLED.value: set(),
}


class RideService:
    """Hopper creation and lifecycle."""

    def __init__(
        self,
        repository: Optional[HopperRepository] = None,
        realtime: Optional[RealtimeService] = None,
        trust_service: Optional[TrustService] = None,
    ):
        self.repository = repository or get_repository()
        self.realtime = realtime or RealtimeService()
        self.trust_service = trust_service or TrustService(self.repository)
        self.matchmaking = MatchmakingService(self.repository)

    async def get_ride(self, ride_id: str) -> Ride:
        ride = await self.repository.get_ride(ride_id)
        if not ride:
            raise RideNotFoundError(f"Ride {ride_id} not found")
        return ride

    async def _get_as_host(self, ride_id: str, actor_id: str) -> Ride:
        ride = await self.get_ride(ride_id)
        if ride.owner_id != actor_id:
            logger.warning(f"User {actor_id} is not the host of ride {ride_id}")
            raise NotAuthorizedError("Only the ride host can do this")
        return ride

    # =========================================================================
    # Creation & Browsing
    # =========================================================================

    async def find_matches(self, user_id: str, draft: RideDraft) -> List[Ride]:
        """Existing hoppers the user could join instead of creating a new one."""
        return await self.matchmaking.find_matches(user_id, draft)

    async def create_ride(self, owner_id: str, data: RideCreate) -> Ride:
        """
        Create an active hopper. The host occupies one seat.

        Matching is not enforced here; callers check find_matches first
        and let the user decide.
        """
        validate_draft(data)
        hh_mm = time_to_minutes(data.departure_time)

        ride = Ride(
            ride_id=str(uuid.uuid4()),
            owner_id=owner_id,
            pickup_location=data.pickup_location.strip(),
            drop_location=data.drop_location.strip(),
            date=normalize_date(data.date).isoformat(),
            departure_time=f"{hh_mm // 60:02d}:{hh_mm % 60:02d}",
            flexibility_minutes=data.flexibility_minutes,
            seats_total=data.seats_total,
            seats_taken=1,
            estimated_fare=data.estimated_fare,
        )
        await self.repository.create_ride(ride)
        logger.info(
            f"Ride {ride.ride_id} created by {owner_id}: "
            f"{ride.pickup_location} -> {ride.drop_location} on {ride.date} {ride.departure_time}"
        )

        await self.realtime.ride_created(ride.model_dump(mode="json"))
        return ride

    async def list_active_rides(
        self,
        date: Optional[str] = None,
        pickup_filter: str = "",
        drop_filter: str = "",
    ) -> List[Ride]:
        """Browse active hoppers; empty filters match everything."""
        day = normalize_date(date).isoformat() if date else None
        rides = await self.repository.list_active_rides(date=day)

        pickup_needle = normalize_location(pickup_filter)
        drop_needle = normalize_location(drop_filter)
        return [
            ride for ride in rides
            if pickup_needle in normalize_location(ride.pickup_location)
            and drop_needle in normalize_location(ride.drop_location)
        ]

    async def list_hosted_rides(self, owner_id: str) -> List[Ride]:
        return await self.repository.list_rides_by_owner(owner_id)

    def share_link(self, ride_id: str) -> str:
        return f"{settings.app_base_url.rstrip('/')}/?ride={ride_id}"

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def _transition(self, ride: Ride, to_status: RideStatus, **fields) -> Ride:
        if to_status.value not in RIDE_TRANSITIONS[ride.status]:
            raise InvalidTransitionError(f"Cannot move ride from {ride.status} to {to_status.value}")

        updated = await self.repository.transition_ride(
            ride.ride_id, [ride.status], to_status.value, **fields
        )
        if not updated:
            raise InvalidTransitionError("Ride status changed, please refresh")

        logger.info(f"Ride {ride.ride_id}: {ride.status} -> {updated.status}")
        await self.realtime.ride_status_changed(ride.ride_id, updated.status)
        return updated

    async def lock_ride(self, ride_id: str, actor_id: str) -> Ride:
        """Host starts the trip."""
        ride = await self._get_as_host(ride_id, actor_id)
        return await self._transition(ride, RideStatus.LOCKED, locked_at=utc_now())

    async def complete_ride(self, ride_id: str, actor_id: str) -> Ride:
        """Finish the ride and reward each accepted member (+1 trust)."""
        ride = await self._get_as_host(ride_id, actor_id)
        completed = await self._transition(ride, RideStatus.COMPLETED, completed_at=utc_now())

        members = await self.repository.list_ride_memberships(
            ride_id, [MembershipStatus.ACCEPTED]
        )
        for member in members:
            try:
                await self.trust_service.reward_ride_completion(member.user_id)
            except ProfileNotFoundError:
                logger.warning(f"No profile for member {member.user_id} of ride {ride_id}")
        # Host's ride count goes up; host trust is not part of this reward
        await self.repository.increment_profile_stats(ride.owner_id, rides_completed=1)

        logger.info(f"Ride {ride_id} completed, rewarded {len(members)} members")
        return completed

    async def cancel_ride(self, ride_id: str, actor_id: str) -> Ride:
        """Cancel the ride. Penalizes the host only if the ride was locked."""
        ride = await self._get_as_host(ride_id, actor_id)
        cancelled = await self._transition(ride, RideStatus.CANCELLED, cancelled_at=utc_now())

        # _transition guarantees the ride was still in the status we read
        if ride.status == RideStatus.LOCKED:
            logger.warning(f"Ride {ride_id} cancelled after lock by host {ride.owner_id}")
            try:
                await self.trust_service.penalize_late_cancellation(ride.owner_id)
            except ProfileNotFoundError:
                logger.warning(f"No profile for host {ride.owner_id}, late-cancel penalty skipped")
        return cancelled

    async def report_no_show(self, ride_id: str, user_id: str, actor_id: str) -> Profile:
        """
        Host reports that an accepted member did not turn up (-5 trust).

        Counted once per member per ride; repeat reports return the profile unchanged.
        """
        ride = await self._get_as_host(ride_id, actor_id)
        if user_id == ride.owner_id:
            raise ValidationError("The host cannot be reported as a no-show")

        members = await self.repository.list_ride_memberships(
            ride_id, [MembershipStatus.ACCEPTED]
        )
        membership = next((m for m in members if m.user_id == user_id), None)
        if not membership:
            raise ValidationError("Only accepted members can be reported as no-shows")

        profile = await self.repository.get_profile(user_id)
        if not profile:
            raise ProfileNotFoundError(f"Profile {user_id} not found")
        if not await self.repository.mark_no_show(membership.membership_id):
            logger.info(f"No-show for {user_id} on ride {ride_id} already recorded")
            return profile

        logger.warning(f"No-show reported for {user_id} on ride {ride_id}")
        return await self.trust_service.record_no_show(user_id)
