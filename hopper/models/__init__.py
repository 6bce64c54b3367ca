"""HOPPER Models Package"""

from hopper.models.ride import Ride, RideCreate, RideDraft, RideStatus
from hopper.models.membership import Membership, MembershipStatus, PaymentStatus
from hopper.models.profile import Profile, ProfileCreate
from hopper.models.referral import Referral, ReferralStats, ReferralStatus
from hopper.models.badge import Badge, BadgeCategory, BADGES, LeaderboardEntry

__all__ = [
    "Ride", "RideCreate", "RideDraft", "RideStatus",
    "Membership", "MembershipStatus", "PaymentStatus",
    "Profile", "ProfileCreate",
    "Referral", "ReferralStats", "ReferralStatus",
    "Badge", "BadgeCategory", "BADGES", "LeaderboardEntry",
]
