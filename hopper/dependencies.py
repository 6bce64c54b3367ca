"""
Request Dependencies

Identity and service providers for the routers. Tests swap the
repository through app.dependency_overrides[get_repo].
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from hopper.repositories import HopperRepository, get_repository
from hopper.services.leaderboard_service import LeaderboardService
from hopper.services.membership_service import MembershipService
from hopper.services.profile_service import ProfileService
from hopper.services.realtime_service import RealtimeService
from hopper.services.referral_service import ReferralService
from hopper.services.ride_service import RideService

realtime_service = RealtimeService()


async def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """
    Caller identity.

    The identity provider sits in front of this API and forwards the
    verified user id in the X-User-Id header.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "unauthenticated", "message": "X-User-Id header required"},
        )
    return x_user_id.strip()


def get_repo() -> HopperRepository:
    return get_repository()


def get_ride_service(repo: HopperRepository = Depends(get_repo)) -> RideService:
    return RideService(repo, realtime=realtime_service)


def get_membership_service(repo: HopperRepository = Depends(get_repo)) -> MembershipService:
    return MembershipService(repo, realtime=realtime_service)


def get_profile_service(repo: HopperRepository = Depends(get_repo)) -> ProfileService:
    return ProfileService(repo)


def get_referral_service(repo: HopperRepository = Depends(get_repo)) -> ReferralService:
    return ReferralService(repo)


def get_leaderboard_service(repo: HopperRepository = Depends(get_repo)) -> LeaderboardService:
    return LeaderboardService(repo)
