"""Shared fixtures: an in-memory store and factories for rides and profiles."""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from hopper.models.profile import Profile
from hopper.models.ride import Ride
from hopper.repositories.memory import InMemoryRepository
from hopper.services.membership_service import MembershipService
from hopper.services.realtime_service import RealtimeService
from hopper.services.ride_service import RideService
from hopper.services.trust_service import TrustService


@pytest.fixture
def repo():
    return InMemoryRepository()


@pytest.fixture
def realtime():
    mock = MagicMock(spec=RealtimeService)
    mock.publish = AsyncMock(return_value=True)
    mock.ride_created = AsyncMock(return_value=True)
    mock.ride_status_changed = AsyncMock(return_value=True)
    mock.membership_event = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def ride_service(repo, realtime):
    return RideService(repo, realtime=realtime)


@pytest.fixture
def membership_service(repo, realtime):
    return MembershipService(repo, realtime=realtime)


@pytest.fixture
def trust_service(repo):
    return TrustService(repo)


@pytest.fixture
def make_ride(repo):
    """Store a ride directly, bypassing validation."""
    async def _make(**overrides) -> Ride:
        data = {
            "ride_id": str(uuid.uuid4()),
            "owner_id": "host",
            "pickup_location": "Tambaram",
            "drop_location": "SRM Campus",
            "date": "2024-05-01",
            "departure_time": "09:00",
            "flexibility_minutes": 30,
            "seats_total": 4,
            "seats_taken": 1,
        }
        data.update(overrides)
        return await repo.create_ride(Ride(**data))
    return _make


@pytest.fixture
def make_profile(repo):
    async def _make(user_id: str, **overrides) -> Profile:
        return await repo.create_profile(Profile(user_id=user_id, name=user_id.title(), **overrides))
    return _make
