"""
Rides Router

Hopper creation, match checks, browsing and the host lifecycle.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from hopper.dependencies import get_current_user_id, get_ride_service
from hopper.models.profile import Profile
from hopper.models.ride import Ride, RideCreate, RideDraft
from hopper.services.ride_service import RideService


router = APIRouter()


class MatchCheckResponse(BaseModel):
    """Existing hoppers that match a proposed ride."""
    has_matches: bool
    matches: List[Ride]


class ShareLinkResponse(BaseModel):
    ride_id: str
    link: str


@router.post("/matches", response_model=MatchCheckResponse)
async def check_matches(
    draft: RideDraft,
    user_id: str = Depends(get_current_user_id),
    ride_service: RideService = Depends(get_ride_service),
):
    """
    Check for existing hoppers before creating a new one.

    Never blocks creation; the client shows the matches and lets the
    user join one or create anyway.
    """
    matches = await ride_service.find_matches(user_id, draft)
    return MatchCheckResponse(has_matches=bool(matches), matches=matches)


@router.post("", response_model=Ride, status_code=status.HTTP_201_CREATED)
async def create_ride(
    data: RideCreate,
    user_id: str = Depends(get_current_user_id),
    ride_service: RideService = Depends(get_ride_service),
):
    return await ride_service.create_ride(user_id, data)


@router.get("", response_model=List[Ride])
async def list_rides(
    date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    pickup: str = Query("", description="Pickup contains"),
    drop: str = Query("", description="Drop contains"),
    ride_service: RideService = Depends(get_ride_service),
):
    """Browse active hoppers."""
    return await ride_service.list_active_rides(date=date, pickup_filter=pickup, drop_filter=drop)


@router.get("/hosted", response_model=List[Ride])
async def list_hosted_rides(
    user_id: str = Depends(get_current_user_id),
    ride_service: RideService = Depends(get_ride_service),
):
    return await ride_service.list_hosted_rides(user_id)


@router.get("/{ride_id}", response_model=Ride)
async def get_ride(ride_id: str, ride_service: RideService = Depends(get_ride_service)):
    return await ride_service.get_ride(ride_id)


@router.get("/{ride_id}/share", response_model=ShareLinkResponse)
async def share_ride(ride_id: str, ride_service: RideService = Depends(get_ride_service)):
    ride = await ride_service.get_ride(ride_id)
    return ShareLinkResponse(ride_id=ride.ride_id, link=ride_service.share_link(ride.ride_id))


@router.post("/{ride_id}/lock", response_model=Ride)
async def lock_ride(
    ride_id: str,
    user_id: str = Depends(get_current_user_id),
    ride_service: RideService = Depends(get_ride_service),
):
    """Host starts the trip."""
    return await ride_service.lock_ride(ride_id, user_id)


@router.post("/{ride_id}/complete", response_model=Ride)
async def complete_ride(
    ride_id: str,
    user_id: str = Depends(get_current_user_id),
    ride_service: RideService = Depends(get_ride_service),
):
    return await ride_service.complete_ride(ride_id, user_id)


@router.post("/{ride_id}/cancel", response_model=Ride)
async def cancel_ride(
    ride_id: str,
    user_id: str = Depends(get_current_user_id),
    ride_service: RideService = Depends(get_ride_service),
):
    return await ride_service.cancel_ride(ride_id, user_id)


@router.post("/{ride_id}/no-show/{member_id}", response_model=Profile)
async def report_no_show(
    ride_id: str,
    member_id: str,
    user_id: str = Depends(get_current_user_id),
    ride_service: RideService = Depends(get_ride_service),
):
    """Host reports an accepted member who did not turn up."""
    return await ride_service.report_no_show(ride_id, member_id, user_id)
