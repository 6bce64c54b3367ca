"""
Membership Service

Join/approval flow for hoppers:

    pending --accept (host)--> accepted --cancel (requester)--> cancelled
    pending --reject (host)--> rejected
    pending --cancel (requester)--> cancelled

Accepting takes a seat atomically (see HopperRepository.accept_membership).
Re-requesting after a rejection or cancellation creates a new record.
"""

import logging
import uuid
from typing import Dict, List, Optional, Set

from hopper.exceptions import (
    InvalidTransitionError,
    MembershipNotFoundError,
    NotAuthorizedError,
    RideNotFoundError,
    ValidationError,
)
from hopper.models.membership import Membership, MembershipStatus
from hopper.models.ride import Ride, RideStatus
from hopper.repositories import HopperRepository, get_repository
from hopper.services.realtime_service import RealtimeService

logger = logging.getLogger(__name__)


MEMBERSHIP_TRANSITIONS: Dict[str, Set[str]] = {
    MembershipStatus.PENDING.value: {
        MembershipStatus.ACCEPTED.value,
        MembershipStatus.REJECTED.value,
        MembershipStatus.CANCELLED.value,
    },
    MembershipStatus.ACCEPTED.value: {MembershipStatus.CANCELLED.value},
    MembershipStatus.REJECTED.value: set(),
    MembershipStatus.CANCELLED.value: set(),
}


CANCEL_ATTEMPTS = (
    MembershipStatus.ACCEPTED,
    MembershipStatus.PENDING,
    MembershipStatus.ACCEPTED,
)


def can_transition(from_status: str, to_status: str) -> bool:
    from_value = getattr(from_status, "value", from_status)
    to_value = getattr(to_status, "value", to_status)
    return to_value in MEMBERSHIP_TRANSITIONS.get(from_value, set())


class MembershipService:
    """Join requests, host approvals and requester cancellations."""

    def __init__(
        self,
        repository: Optional[HopperRepository] = None,
        realtime: Optional[RealtimeService] = None,
    ):
        self.repository = repository or get_repository()
        self.realtime = realtime or RealtimeService()

    async def _get_ride(self, ride_id: str) -> Ride:
        ride = await self.repository.get_ride(ride_id)
        if not ride:
            raise RideNotFoundError(f"Ride {ride_id} not found")
        return ride

    async def _get_membership(self, membership_id: str) -> Membership:
        membership = await self.repository.get_membership(membership_id)
        if not membership:
            raise MembershipNotFoundError(f"Membership {membership_id} not found")
        return membership

    async def _get_as_host(self, membership_id: str, actor_id: str):
        membership = await self._get_membership(membership_id)
        ride = await self._get_ride(membership.ride_id)
        if ride.owner_id != actor_id:
            logger.warning(
                f"User {actor_id} tried to resolve request {membership_id} on ride {ride.ride_id}"
            )
            raise NotAuthorizedError("Only the ride host can respond to requests")
        return membership, ride

    # =========================================================================
    # Requester actions
    # =========================================================================

    async def request_join(self, ride_id: str, user_id: str) -> Membership:
        """
        Create a pending request.

        Raises DuplicateRequestError if the user already has a pending or
        accepted request for this ride.
        """
        ride = await self._get_ride(ride_id)
        if ride.owner_id == user_id:
            raise ValidationError("You cannot join your own hopper")
        if ride.status != RideStatus.ACTIVE:
            raise ValidationError(f"This hopper is {ride.status} and no longer takes requests")

        membership = await self.repository.create_membership(
            Membership(
                membership_id=str(uuid.uuid4()),
                ride_id=ride_id,
                user_id=user_id,
            )
        )
        logger.info(f"User {user_id} requested to join ride {ride_id}")

        await self.realtime.membership_event(
            "membership_requested", ride_id, membership.membership_id, user_id,
            status=membership.status,
        )
        return membership

    async def cancel(self, membership_id: str, actor_id: str) -> Membership:
        """Withdraw a pending or accepted request. Frees the seat if it was accepted."""
        membership = await self._get_membership(membership_id)
        if membership.user_id != actor_id:
            raise NotAuthorizedError("Only the requester can cancel this request")
        if not can_transition(membership.status, MembershipStatus.CANCELLED):
            raise InvalidTransitionError(f"Cannot cancel a request that is {membership.status}")

        # Pending only moves forward, so after a failed pending attempt the
        # request is either accepted (retry frees the seat) or terminal
        cancelled = None
        for source in CANCEL_ATTEMPTS:
            cancelled = await self.repository.transition_membership(
                membership_id, [source], MembershipStatus.CANCELLED.value
            )
            if cancelled:
                if source == MembershipStatus.ACCEPTED:
                    await self.repository.release_seat(membership.ride_id)
                break
        if not cancelled:
            raise InvalidTransitionError("This request was already resolved")

        logger.info(f"User {actor_id} cancelled membership {membership_id}")
        await self.realtime.membership_event(
            "membership_updated", membership.ride_id, membership_id, actor_id,
            status=cancelled.status,
        )
        return cancelled

    # =========================================================================
    # Host actions
    # =========================================================================

    async def accept(self, membership_id: str, actor_id: str) -> Membership:
        """
        Accept a pending request and take a seat.

        Raises OverbookingError when the ride is already full.
        """
        membership, ride = await self._get_as_host(membership_id, actor_id)
        if not can_transition(membership.status, MembershipStatus.ACCEPTED):
            raise InvalidTransitionError(f"Cannot accept a request that is {membership.status}")

        accepted = await self.repository.accept_membership(membership_id)
        logger.info(f"Host {actor_id} accepted {membership.user_id} on ride {ride.ride_id}")

        await self.realtime.membership_event(
            "membership_updated", ride.ride_id, membership_id, membership.user_id,
            status=accepted.status,
        )
        return accepted

    async def reject(self, membership_id: str, actor_id: str) -> Membership:
        membership, ride = await self._get_as_host(membership_id, actor_id)
        if not can_transition(membership.status, MembershipStatus.REJECTED):
            raise InvalidTransitionError(f"Cannot reject a request that is {membership.status}")

        rejected = await self.repository.transition_membership(
            membership_id, [MembershipStatus.PENDING], MembershipStatus.REJECTED.value
        )
        if not rejected:
            raise InvalidTransitionError("This request was already resolved")

        logger.info(f"Host {actor_id} rejected {membership.user_id} on ride {ride.ride_id}")
        await self.realtime.membership_event(
            "membership_updated", ride.ride_id, membership_id, membership.user_id,
            status=rejected.status,
        )
        return rejected

    # =========================================================================
    # Queries
    # =========================================================================

    async def list_pending_requests(self, ride_id: str, actor_id: str) -> List[Membership]:
        ride = await self._get_ride(ride_id)
        if ride.owner_id != actor_id:
            raise NotAuthorizedError("Only the ride host can see pending requests")
        return await self.repository.list_ride_memberships(
            ride_id, [MembershipStatus.PENDING]
        )

    async def list_ride_members(self, ride_id: str) -> List[dict]:
        """Accepted members with a short profile summary, in join order."""
        await self._get_ride(ride_id)
        members = await self.repository.list_ride_memberships(
            ride_id, [MembershipStatus.ACCEPTED]
        )
        profiles = {
            p.user_id: p
            for p in await self.repository.get_profiles([m.user_id for m in members])
        }

        result = []
        for member in members:
            profile = profiles.get(member.user_id)
            result.append({
                **member.model_dump(),
                "name": profile.name if profile else None,
                "trust_score": profile.trust_score if profile else None,
            })
        return result

    async def list_user_requests(self, user_id: str) -> List[Membership]:
        return await self.repository.list_user_memberships(user_id)
