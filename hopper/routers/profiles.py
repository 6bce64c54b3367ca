"""Profiles Router"""

from typing import List

from fastapi import APIRouter, Depends

from hopper.dependencies import (
    get_current_user_id,
    get_leaderboard_service,
    get_profile_service,
)
from hopper.models.badge import Badge
from hopper.models.profile import Profile, ProfileCreate
from hopper.services.leaderboard_service import LeaderboardService
from hopper.services.profile_service import ProfileService


router = APIRouter()


@router.post("/me", response_model=Profile)
async def create_my_profile(
    data: ProfileCreate,
    user_id: str = Depends(get_current_user_id),
    profile_service: ProfileService = Depends(get_profile_service),
):
    return await profile_service.get_or_create_profile(user_id, data)


@router.get("/me", response_model=Profile)
async def get_my_profile(
    user_id: str = Depends(get_current_user_id),
    profile_service: ProfileService = Depends(get_profile_service),
):
    return await profile_service.get_profile(user_id)


@router.get("/{user_id}/badges", response_model=List[Badge])
async def get_badges(
    user_id: str,
    leaderboard_service: LeaderboardService = Depends(get_leaderboard_service),
):
    return await leaderboard_service.get_user_badges(user_id)
