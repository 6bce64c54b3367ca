"""HOPPER Routers Package"""

from hopper.routers import (
    rides,
    memberships,
    profiles,
    referrals,
    leaderboards,
)

__all__ = [
    "rides",
    "memberships",
    "profiles",
    "referrals",
    "leaderboards",
]
