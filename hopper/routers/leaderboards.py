"""Leaderboards Router"""

from typing import List

from fastapi import APIRouter, Depends, Query

from hopper.dependencies import get_leaderboard_service
from hopper.models.badge import LeaderboardEntry
from hopper.services.leaderboard_service import LeaderboardService


router = APIRouter()


@router.get("/reliability", response_model=List[LeaderboardEntry])
async def reliability(
    limit: int = Query(10, ge=1, le=100),
    leaderboard_service: LeaderboardService = Depends(get_leaderboard_service),
):
    return await leaderboard_service.reliability_leaderboard(limit)


@router.get("/riders", response_model=List[LeaderboardEntry])
async def top_riders(
    limit: int = Query(10, ge=1, le=100),
    leaderboard_service: LeaderboardService = Depends(get_leaderboard_service),
):
    return await leaderboard_service.top_riders_leaderboard(limit)


@router.get("/referrers")
async def top_referrers(
    limit: int = Query(10, ge=1, le=100),
    leaderboard_service: LeaderboardService = Depends(get_leaderboard_service),
):
    return await leaderboard_service.top_referrers_leaderboard(limit)
