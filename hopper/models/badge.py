"""Badge Model - Gamification badges and their catalogue."""

from enum import Enum
from typing import List

from pydantic import BaseModel


class BadgeCategory(str, Enum):
    RIDES = "rides"
    TRUST = "trust"
    REFERRAL = "referral"
    RELIABILITY = "reliability"


class Badge(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    requirement: float
    category: BadgeCategory


BADGES: List[Badge] = [
    Badge(id="first_split", name="First Split", description="Completed your first shared ride",
          icon="🎉", requirement=1, category=BadgeCategory.RIDES),
    Badge(id="10_rides", name="Road Tripper", description="Completed 10 rides",
          icon="🚗", requirement=10, category=BadgeCategory.RIDES),
    Badge(id="50_rides", name="Travel Master", description="Completed 50 rides",
          icon="🌍", requirement=50, category=BadgeCategory.RIDES),
    Badge(id="trusted_user", name="Trusted User", description="Reached 4.5+ trust score",
          icon="⭐", requirement=4.5, category=BadgeCategory.TRUST),
    Badge(id="referral_king", name="Referral King", description="Successfully referred 5 friends",
          icon="👑", requirement=5, category=BadgeCategory.REFERRAL),
    Badge(id="reliable_rider", name="Reliable Rider", description="Zero no-shows in 20 rides",
          icon="✅", requirement=20, category=BadgeCategory.RELIABILITY),
]


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    name: str
    value: float
    badge: str
