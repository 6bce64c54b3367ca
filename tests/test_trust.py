"""
Tests for trust scores

Pure adjustment plus the lifecycle events that drive it.
"""

import asyncio

import pytest

from hopper.exceptions import (
    InvalidTransitionError,
    NotAuthorizedError,
    ProfileNotFoundError,
    ValidationError,
)
from hopper.models.profile import Profile
from hopper.repositories.memory import InMemoryRepository
from hopper.services.trust_service import TRUST_SCORE_FLOOR, TrustService, adjust_trust_score


class YieldingRepository(InMemoryRepository):
    """Gives up the event loop before every store call, like a networked store."""

    async def get_profile(self, user_id):
        await asyncio.sleep(0)
        return await super().get_profile(user_id)

    async def adjust_trust_score(self, user_id, delta, floor=TRUST_SCORE_FLOOR):
        await asyncio.sleep(0)
        return await super().adjust_trust_score(user_id, delta, floor)

    async def increment_profile_stats(self, user_id, **counters):
        await asyncio.sleep(0)
        return await super().increment_profile_stats(user_id, **counters)


class TestAdjustTrustScore:

    @pytest.mark.parametrize("old,delta,expected", [
        (4.0, 1.0, 5.0),
        (4.0, -2.0, 2.0),
        (4.0, -5.0, 1.0),
        (1.0, -2.0, 1.0),
        (2.5, -2.0, 1.0),
    ])
    def test_adjust(self, old, delta, expected):
        assert adjust_trust_score(old, delta) == expected

    def test_floor_holds_for_any_sequence(self):
        score = 4.0
        for delta in [-5.0, 1.0, -2.0, -2.0, 1.0, 1.0, -5.0, -5.0, 1.0]:
            score = adjust_trust_score(score, delta)
            assert score >= TRUST_SCORE_FLOOR
        assert score == 2.0


class TestTrustService:

    @pytest.mark.asyncio
    async def test_missing_profile(self, trust_service):
        with pytest.raises(ProfileNotFoundError):
            await trust_service.apply_delta("nobody", 1.0)

    @pytest.mark.asyncio
    async def test_no_show_counts_and_penalizes(self, trust_service, make_profile):
        await make_profile("rider")

        profile = await trust_service.record_no_show("rider")

        assert profile.trust_score == 1.0
        assert profile.no_show_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_deltas_all_apply(self):
        """Deltas racing on one profile are not lost."""
        repo = YieldingRepository()
        service = TrustService(repo)
        await repo.create_profile(Profile(user_id="rider", name="Rider"))

        await asyncio.gather(
            service.apply_delta("rider", 1.0),
            service.apply_delta("rider", 1.0),
            service.reward_ride_completion("rider"),
        )

        profile = await repo.get_profile("rider")
        assert profile.trust_score == 7.0
        assert profile.rides_completed == 1

    @pytest.mark.asyncio
    async def test_concurrent_deltas_respect_floor(self):
        repo = YieldingRepository()
        service = TrustService(repo)
        await repo.create_profile(Profile(user_id="rider", name="Rider"))

        await asyncio.gather(*[service.apply_delta("rider", -2.0) for _ in range(4)])

        assert (await repo.get_profile("rider")).trust_score == TRUST_SCORE_FLOOR


class TestLifecycleTrust:

    @pytest.mark.asyncio
    async def test_completion_rewards_each_member(
        self, ride_service, membership_service, make_ride, make_profile, repo
    ):
        """Three accepted members at 4.0 each go to 5.0; the host stays at 4.0."""
        ride = await make_ride()
        await make_profile("host")
        for user_id in ("a", "b", "c"):
            await make_profile(user_id)
            request = await membership_service.request_join(ride.ride_id, user_id)
            await membership_service.accept(request.membership_id, "host")
        pending = await membership_service.request_join(ride.ride_id, "d")
        await make_profile("d")

        completed = await ride_service.complete_ride(ride.ride_id, "host")

        assert completed.status == "completed"
        assert completed.completed_at is not None
        for user_id in ("a", "b", "c"):
            profile = await repo.get_profile(user_id)
            assert profile.trust_score == 5.0
            assert profile.rides_completed == 1
        host = await repo.get_profile("host")
        assert host.trust_score == 4.0
        assert host.rides_completed == 1
        assert (await repo.get_profile("d")).trust_score == 4.0
        assert (await repo.get_membership(pending.membership_id)).status == "pending"

    @pytest.mark.asyncio
    async def test_completion_skips_members_without_profile(
        self, ride_service, membership_service, make_ride, make_profile, repo
    ):
        ride = await make_ride()
        await make_profile("host")
        request = await membership_service.request_join(ride.ride_id, "ghost")
        await membership_service.accept(request.membership_id, "host")

        completed = await ride_service.complete_ride(ride.ride_id, "host")
        assert completed.status == "completed"

    @pytest.mark.asyncio
    async def test_cancel_while_active_costs_nothing(self, ride_service, make_ride, make_profile, repo):
        ride = await make_ride()
        await make_profile("host")

        cancelled = await ride_service.cancel_ride(ride.ride_id, "host")

        assert cancelled.status == "cancelled"
        assert (await repo.get_profile("host")).trust_score == 4.0

    @pytest.mark.asyncio
    async def test_cancel_after_lock_penalizes_host(self, ride_service, make_ride, make_profile, repo):
        ride = await make_ride()
        await make_profile("host")
        await ride_service.lock_ride(ride.ride_id, "host")

        await ride_service.cancel_ride(ride.ride_id, "host")

        assert (await repo.get_profile("host")).trust_score == 2.0

    @pytest.mark.asyncio
    async def test_cancel_after_lock_respects_floor(self, ride_service, make_ride, make_profile, repo):
        ride = await make_ride()
        await make_profile("host", trust_score=2.5)
        await ride_service.lock_ride(ride.ride_id, "host")

        await ride_service.cancel_ride(ride.ride_id, "host")

        assert (await repo.get_profile("host")).trust_score == 1.0

    @pytest.mark.asyncio
    async def test_no_show_report(self, ride_service, membership_service, make_ride, make_profile, repo):
        ride = await make_ride()
        await make_profile("rider")
        request = await membership_service.request_join(ride.ride_id, "rider")
        await membership_service.accept(request.membership_id, "host")

        profile = await ride_service.report_no_show(ride.ride_id, "rider", "host")

        assert profile.trust_score == 1.0
        assert profile.no_show_count == 1

    @pytest.mark.asyncio
    async def test_no_show_requires_accepted_member(
        self, ride_service, membership_service, make_ride, make_profile
    ):
        ride = await make_ride()
        await make_profile("rider")
        await membership_service.request_join(ride.ride_id, "rider")

        with pytest.raises(ValidationError):
            await ride_service.report_no_show(ride.ride_id, "rider", "host")
        with pytest.raises(ValidationError):
            await ride_service.report_no_show(ride.ride_id, "host", "host")

    @pytest.mark.asyncio
    async def test_no_show_host_only(self, ride_service, make_ride):
        ride = await make_ride()
        with pytest.raises(NotAuthorizedError):
            await ride_service.report_no_show(ride.ride_id, "rider", "rider")

    @pytest.mark.asyncio
    async def test_cancel_after_lock_without_host_profile(self, ride_service, make_ride, repo):
        """A host with no profile can still cancel; the penalty is skipped."""
        ride = await make_ride(owner_id="ghost_host")
        await ride_service.lock_ride(ride.ride_id, "ghost_host")

        cancelled = await ride_service.cancel_ride(ride.ride_id, "ghost_host")

        assert cancelled.status == "cancelled"
        assert (await repo.get_ride(ride.ride_id)).status == "cancelled"

    @pytest.mark.asyncio
    async def test_no_show_counted_once_per_ride(
        self, ride_service, membership_service, make_ride, make_profile, repo
    ):
        ride = await make_ride()
        await make_profile("rider", trust_score=5.0)
        request = await membership_service.request_join(ride.ride_id, "rider")
        await membership_service.accept(request.membership_id, "host")

        first = await ride_service.report_no_show(ride.ride_id, "rider", "host")
        second = await ride_service.report_no_show(ride.ride_id, "rider", "host")

        assert first.trust_score == 1.0
        assert second.trust_score == 1.0
        assert second.no_show_count == 1
        assert (await repo.get_membership(request.membership_id)).no_show_reported_at is not None

    @pytest.mark.asyncio
    async def test_no_show_on_separate_rides_both_count(
        self, ride_service, membership_service, make_ride, make_profile
    ):
        await make_profile("rider", trust_score=5.0)
        for ride_id in ("r1", "r2"):
            ride = await make_ride(ride_id=ride_id)
            request = await membership_service.request_join(ride.ride_id, "rider")
            await membership_service.accept(request.membership_id, "host")

        await ride_service.report_no_show("r1", "rider", "host")
        profile = await ride_service.report_no_show("r2", "rider", "host")

        assert profile.no_show_count == 2

    @pytest.mark.asyncio
    async def test_no_show_without_profile_records_nothing(
        self, ride_service, membership_service, make_ride, repo
    ):
        ride = await make_ride()
        request = await membership_service.request_join(ride.ride_id, "ghost")
        await membership_service.accept(request.membership_id, "host")

        with pytest.raises(ProfileNotFoundError):
            await ride_service.report_no_show(ride.ride_id, "ghost", "host")
        assert (await repo.get_membership(request.membership_id)).no_show_reported_at is None


class TestRideTransitions:

    @pytest.mark.asyncio
    async def test_terminal_states(self, ride_service, make_ride, make_profile):
        ride = await make_ride()
        await make_profile("host")
        await ride_service.complete_ride(ride.ride_id, "host")

        with pytest.raises(InvalidTransitionError):
            await ride_service.cancel_ride(ride.ride_id, "host")
        with pytest.raises(InvalidTransitionError):
            await ride_service.lock_ride(ride.ride_id, "host")

    @pytest.mark.asyncio
    async def test_lock_twice(self, ride_service, make_ride):
        ride = await make_ride()
        locked = await ride_service.lock_ride(ride.ride_id, "host")
        assert locked.locked_at is not None

        with pytest.raises(InvalidTransitionError):
            await ride_service.lock_ride(ride.ride_id, "host")

    @pytest.mark.asyncio
    async def test_only_host_changes_status(self, ride_service, make_ride):
        ride = await make_ride()
        with pytest.raises(NotAuthorizedError):
            await ride_service.lock_ride(ride.ride_id, "rider")

    @pytest.mark.asyncio
    async def test_status_change_published(self, ride_service, make_ride, realtime):
        ride = await make_ride()
        await ride_service.lock_ride(ride.ride_id, "host")
        realtime.ride_status_changed.assert_awaited_once_with(ride.ride_id, "locked")
