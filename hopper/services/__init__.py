"""HOPPER Services Package"""

from hopper.services.matchmaking_service import MatchmakingService
from hopper.services.membership_service import MembershipService
from hopper.services.ride_service import RideService
from hopper.services.trust_service import TrustService
from hopper.services.referral_service import ReferralService
from hopper.services.leaderboard_service import LeaderboardService
from hopper.services.profile_service import ProfileService
from hopper.services.realtime_service import RealtimeService

__all__ = [
    "MatchmakingService",
    "MembershipService",
    "RideService",
    "TrustService",
    "ReferralService",
    "LeaderboardService",
    "ProfileService",
    "RealtimeService",
]
