"""Leaderboard Service - Badges and leaderboards."""

from typing import List, Optional

from hopper.exceptions import ProfileNotFoundError
from hopper.models.badge import BADGES, Badge, BadgeCategory, LeaderboardEntry
from hopper.models.referral import ReferralStatus
from hopper.repositories import HopperRepository, get_repository
from hopper.services.referral_service import ReferralService


def compute_badges(
    rides_completed: int,
    trust_score: float,
    completed_referrals: int,
    no_show_count: int,
) -> List[Badge]:
    """Badges earned for the given stats, in catalogue order."""
    earned = []
    for badge in BADGES:
        if badge.category == BadgeCategory.RIDES:
            ok = rides_completed >= badge.requirement
        elif badge.category == BadgeCategory.TRUST:
            ok = trust_score >= badge.requirement
        elif badge.category == BadgeCategory.REFERRAL:
            ok = completed_referrals >= badge.requirement
        else:
            ok = no_show_count == 0 and rides_completed >= badge.requirement
        if ok:
            earned.append(badge)
    return earned


class LeaderboardService:

    def __init__(self, repository: Optional[HopperRepository] = None):
        self.repository = repository or get_repository()
        self.referral_service = ReferralService(self.repository)

    async def get_user_badges(self, user_id: str) -> List[Badge]:
        profile = await self.repository.get_profile(user_id)
        if not profile:
            raise ProfileNotFoundError(f"Profile {user_id} not found")

        referrals = await self.repository.list_referrals(
            referrer_id=user_id, status=ReferralStatus.COMPLETED
        )
        return compute_badges(
            rides_completed=profile.rides_completed,
            trust_score=profile.trust_score,
            completed_referrals=len(referrals),
            no_show_count=profile.no_show_count,
        )

    async def reliability_leaderboard(self, limit: int = 10) -> List[LeaderboardEntry]:
        profiles = await self.repository.list_top_profiles("trust_score", limit)
        return [
            LeaderboardEntry(rank=i + 1, user_id=p.user_id, name=p.name,
                             value=p.trust_score, badge="⭐")
            for i, p in enumerate(profiles)
        ]

    async def top_riders_leaderboard(self, limit: int = 10) -> List[LeaderboardEntry]:
        profiles = await self.repository.list_top_profiles("rides_completed", limit)
        return [
            LeaderboardEntry(rank=i + 1, user_id=p.user_id, name=p.name,
                             value=p.rides_completed, badge="🚗")
            for i, p in enumerate(profiles)
        ]

    async def top_referrers_leaderboard(self, limit: int = 10) -> List[dict]:
        top = await self.referral_service.top_referrers(limit)
        profiles = {
            p.user_id: p
            for p in await self.repository.get_profiles([t["referrer_id"] for t in top])
        }

        entries = []
        for i, stat in enumerate(top):
            profile = profiles.get(stat["referrer_id"])
            entries.append({
                "rank": i + 1,
                "user_id": stat["referrer_id"],
                "name": profile.name if profile else "Unknown",
                "referrals": stat["count"],
                "earnings": stat["earnings"],
                "badge": "👑",
            })
        return entries
