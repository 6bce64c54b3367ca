"""
Tests for the join / approval flow

Request, accept, reject and cancel, including seat accounting under
concurrent accepts.
"""

import asyncio

import pytest

from hopper.exceptions import (
    DuplicateRequestError,
    InvalidTransitionError,
    MembershipNotFoundError,
    NotAuthorizedError,
    OverbookingError,
    ValidationError,
)
from hopper.models.membership import MembershipStatus
from hopper.models.ride import Ride
from hopper.repositories.base import status_values
from hopper.repositories.memory import InMemoryRepository
from hopper.services.membership_service import MembershipService, can_transition


class AcceptMidCancelRepository(InMemoryRepository):
    """Host accept lands just before the pending -> cancelled attempt."""

    async def transition_membership(self, membership_id, from_statuses, to_status):
        if "pending" in status_values(from_statuses) and to_status == "cancelled":
            await self.accept_membership(membership_id)
        return await super().transition_membership(membership_id, from_statuses, to_status)


class TestTransitionTable:

    @pytest.mark.parametrize("from_status,to_status,allowed", [
        ("pending", "accepted", True),
        ("pending", "rejected", True),
        ("pending", "cancelled", True),
        ("accepted", "cancelled", True),
        ("accepted", "rejected", False),
        ("rejected", "accepted", False),
        ("rejected", "pending", False),
        ("cancelled", "accepted", False),
    ])
    def test_transitions(self, from_status, to_status, allowed):
        assert can_transition(from_status, to_status) is allowed

    def test_accepts_enum_members(self):
        assert can_transition(MembershipStatus.PENDING, MembershipStatus.ACCEPTED)


class TestRequestJoin:

    @pytest.mark.asyncio
    async def test_request_is_pending(self, membership_service, make_ride, realtime):
        ride = await make_ride()

        membership = await membership_service.request_join(ride.ride_id, "rider")

        assert membership.status == "pending"
        assert membership.payment_status == "pending"
        realtime.membership_event.assert_awaited_once()
        assert realtime.membership_event.call_args[0][0] == "membership_requested"

    @pytest.mark.asyncio
    async def test_duplicate_request_rejected(self, membership_service, make_ride):
        ride = await make_ride()
        await membership_service.request_join(ride.ride_id, "rider")

        with pytest.raises(DuplicateRequestError):
            await membership_service.request_join(ride.ride_id, "rider")

    @pytest.mark.asyncio
    async def test_duplicate_while_accepted(self, membership_service, make_ride):
        ride = await make_ride()
        first = await membership_service.request_join(ride.ride_id, "rider")
        await membership_service.accept(first.membership_id, "host")

        with pytest.raises(DuplicateRequestError):
            await membership_service.request_join(ride.ride_id, "rider")

    @pytest.mark.asyncio
    async def test_rerequest_after_reject_creates_new_record(self, membership_service, make_ride):
        ride = await make_ride()
        first = await membership_service.request_join(ride.ride_id, "rider")
        await membership_service.reject(first.membership_id, "host")

        second = await membership_service.request_join(ride.ride_id, "rider")

        assert second.membership_id != first.membership_id
        assert second.status == "pending"
        old = await membership_service.repository.get_membership(first.membership_id)
        assert old.status == "rejected"

    @pytest.mark.asyncio
    async def test_rerequest_after_cancel(self, membership_service, make_ride):
        ride = await make_ride()
        first = await membership_service.request_join(ride.ride_id, "rider")
        await membership_service.cancel(first.membership_id, "rider")

        second = await membership_service.request_join(ride.ride_id, "rider")
        assert second.membership_id != first.membership_id

    @pytest.mark.asyncio
    async def test_cannot_join_own_ride(self, membership_service, make_ride):
        ride = await make_ride()
        with pytest.raises(ValidationError):
            await membership_service.request_join(ride.ride_id, "host")

    @pytest.mark.asyncio
    async def test_cannot_join_inactive_ride(self, membership_service, make_ride):
        ride = await make_ride(status="locked")
        with pytest.raises(ValidationError):
            await membership_service.request_join(ride.ride_id, "rider")


class TestAccept:

    @pytest.mark.asyncio
    async def test_accept_takes_a_seat(self, membership_service, make_ride, repo):
        ride = await make_ride()
        request = await membership_service.request_join(ride.ride_id, "rider")

        accepted = await membership_service.accept(request.membership_id, "host")

        assert accepted.status == "accepted"
        assert accepted.resolved_at is not None
        assert (await repo.get_ride(ride.ride_id)).seats_taken == 2

    @pytest.mark.asyncio
    async def test_only_host_can_accept(self, membership_service, make_ride, repo):
        ride = await make_ride()
        request = await membership_service.request_join(ride.ride_id, "rider")

        with pytest.raises(NotAuthorizedError):
            await membership_service.accept(request.membership_id, "rider")
        assert (await repo.get_ride(ride.ride_id)).seats_taken == 1

    @pytest.mark.asyncio
    async def test_accept_when_full_is_overbooking(self, membership_service, make_ride, repo):
        ride = await make_ride(seats_total=4)
        request = await membership_service.request_join(ride.ride_id, "rider")
        await repo.transition_ride(ride.ride_id, ["active"], "active", seats_taken=4)

        with pytest.raises(OverbookingError):
            await membership_service.accept(request.membership_id, "host")

        assert (await repo.get_ride(ride.ride_id)).seats_taken == 4
        assert (await repo.get_membership(request.membership_id)).status == "pending"

    @pytest.mark.asyncio
    async def test_concurrent_accepts_for_last_seat(self, membership_service, make_ride, repo):
        """Two accepts race for one seat: exactly one wins."""
        ride = await make_ride(seats_total=4, seats_taken=3)
        a = await membership_service.request_join(ride.ride_id, "rider_a")
        b = await membership_service.request_join(ride.ride_id, "rider_b")

        results = await asyncio.gather(
            membership_service.accept(a.membership_id, "host"),
            membership_service.accept(b.membership_id, "host"),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], OverbookingError)
        assert (await repo.get_ride(ride.ride_id)).seats_taken == 4

    @pytest.mark.asyncio
    async def test_accept_rejected_request_fails(self, membership_service, make_ride):
        ride = await make_ride()
        request = await membership_service.request_join(ride.ride_id, "rider")
        await membership_service.reject(request.membership_id, "host")

        with pytest.raises(InvalidTransitionError):
            await membership_service.accept(request.membership_id, "host")

    @pytest.mark.asyncio
    async def test_accept_on_locked_ride_fails(self, membership_service, make_ride, repo):
        ride = await make_ride()
        request = await membership_service.request_join(ride.ride_id, "rider")
        await repo.transition_ride(ride.ride_id, ["active"], "locked")

        with pytest.raises(InvalidTransitionError):
            await membership_service.accept(request.membership_id, "host")

    @pytest.mark.asyncio
    async def test_unknown_membership(self, membership_service):
        with pytest.raises(MembershipNotFoundError):
            await membership_service.accept("missing", "host")


class TestRejectAndCancel:

    @pytest.mark.asyncio
    async def test_reject_is_terminal(self, membership_service, make_ride):
        ride = await make_ride()
        request = await membership_service.request_join(ride.ride_id, "rider")
        await membership_service.reject(request.membership_id, "host")

        with pytest.raises(InvalidTransitionError):
            await membership_service.reject(request.membership_id, "host")
        with pytest.raises(InvalidTransitionError):
            await membership_service.cancel(request.membership_id, "rider")

    @pytest.mark.asyncio
    async def test_only_host_can_reject(self, membership_service, make_ride):
        ride = await make_ride()
        request = await membership_service.request_join(ride.ride_id, "rider")
        with pytest.raises(NotAuthorizedError):
            await membership_service.reject(request.membership_id, "someone")

    @pytest.mark.asyncio
    async def test_cancel_pending_keeps_seats(self, membership_service, make_ride, repo):
        ride = await make_ride()
        request = await membership_service.request_join(ride.ride_id, "rider")

        cancelled = await membership_service.cancel(request.membership_id, "rider")

        assert cancelled.status == "cancelled"
        assert (await repo.get_ride(ride.ride_id)).seats_taken == 1

    @pytest.mark.asyncio
    async def test_cancel_accepted_releases_seat(self, membership_service, make_ride, repo):
        ride = await make_ride()
        request = await membership_service.request_join(ride.ride_id, "rider")
        await membership_service.accept(request.membership_id, "host")

        await membership_service.cancel(request.membership_id, "rider")

        assert (await repo.get_ride(ride.ride_id)).seats_taken == 1

    @pytest.mark.asyncio
    async def test_cancel_survives_accept_in_between(self, realtime):
        repo = AcceptMidCancelRepository()
        service = MembershipService(repo, realtime=realtime)
        ride = await repo.create_ride(Ride(
            ride_id="r1", owner_id="host", pickup_location="Tambaram",
            drop_location="SRM Campus", date="2024-05-01", departure_time="09:00",
            seats_total=4,
        ))
        request = await service.request_join(ride.ride_id, "rider")

        cancelled = await service.cancel(request.membership_id, "rider")

        assert cancelled.status == "cancelled"
        assert (await repo.get_ride("r1")).seats_taken == 1

    @pytest.mark.asyncio
    async def test_only_requester_can_cancel(self, membership_service, make_ride):
        ride = await make_ride()
        request = await membership_service.request_join(ride.ride_id, "rider")
        with pytest.raises(NotAuthorizedError):
            await membership_service.cancel(request.membership_id, "host")


class TestQueries:

    @pytest.mark.asyncio
    async def test_pending_requests_host_only(self, membership_service, make_ride):
        ride = await make_ride()
        await membership_service.request_join(ride.ride_id, "rider")

        pending = await membership_service.list_pending_requests(ride.ride_id, "host")
        assert [m.user_id for m in pending] == ["rider"]

        with pytest.raises(NotAuthorizedError):
            await membership_service.list_pending_requests(ride.ride_id, "rider")

    @pytest.mark.asyncio
    async def test_members_include_profile_summary(
        self, membership_service, make_ride, make_profile
    ):
        ride = await make_ride()
        await make_profile("rider", trust_score=4.6)
        request = await membership_service.request_join(ride.ride_id, "rider")
        await membership_service.accept(request.membership_id, "host")
        await membership_service.request_join(ride.ride_id, "waiting")

        members = await membership_service.list_ride_members(ride.ride_id)

        assert len(members) == 1
        assert members[0]["user_id"] == "rider"
        assert members[0]["name"] == "Rider"
        assert members[0]["trust_score"] == 4.6

    @pytest.mark.asyncio
    async def test_user_requests_across_rides(self, membership_service, make_ride):
        first = await make_ride(ride_id="r1")
        second = await make_ride(ride_id="r2")
        await membership_service.request_join(first.ride_id, "rider")
        await membership_service.request_join(second.ride_id, "rider")
        await membership_service.request_join(second.ride_id, "other")

        mine = await membership_service.list_user_requests("rider")

        assert [m.ride_id for m in mine] == ["r1", "r2"]
