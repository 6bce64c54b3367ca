"""
MongoDB Repository

Motor-backed implementation of HopperRepository. Every state change is a
conditional find_one_and_update so concurrent requests cannot both win.
"""

import logging
from typing import Iterable, List, Optional

from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from hopper.database import get_db
from hopper.exceptions import (
    DuplicateReferralError,
    DuplicateRequestError,
    InvalidTransitionError,
    MembershipNotFoundError,
    OverbookingError,
    RideNotFoundError,
)
from hopper.models.membership import Membership, MembershipStatus
from hopper.models.profile import TRUST_SCORE_FLOOR, Profile
from hopper.models.referral import Referral, ReferralStatus
from hopper.models.ride import Ride, RideStatus
from hopper.repositories.base import HopperRepository, status_values
from hopper.utils.timezone_utils import utc_now

logger = logging.getLogger(__name__)

NO_ID = {"_id": 0}


def _status_filter(statuses: Optional[Iterable[str]]) -> dict:
    if statuses is None:
        return {}
    return {"status": {"$in": list(status_values(statuses))}}


class MongoRepository(HopperRepository):
    """
    MongoDB persistence.

    Collections: rides, memberships, profiles, referrals. Indexes are
    created by hopper.database.create_indexes.
    """

    # =========================================================================
    # Rides
    # =========================================================================

    async def create_ride(self, ride: Ride) -> Ride:
        db = get_db()
        await db.rides.insert_one(ride.model_dump())
        return ride

    async def get_ride(self, ride_id: str) -> Optional[Ride]:
        db = get_db()
        doc = await db.rides.find_one({"ride_id": ride_id}, NO_ID)
        return Ride(**doc) if doc else None

    async def list_active_rides(self, date: Optional[str] = None) -> List[Ride]:
        db = get_db()
        query = {"status": RideStatus.ACTIVE.value}
        if date is not None:
            query["date"] = date
        cursor = db.rides.find(query, NO_ID).sort("created_at", 1)
        return [Ride(**doc) async for doc in cursor]

    async def list_rides_by_owner(
        self, owner_id: str, statuses: Optional[Iterable[str]] = None
    ) -> List[Ride]:
        db = get_db()
        query = {"owner_id": owner_id, **_status_filter(statuses)}
        cursor = db.rides.find(query, NO_ID).sort("created_at", 1)
        return [Ride(**doc) async for doc in cursor]

    async def transition_ride(
        self, ride_id: str, from_statuses: Iterable[str], to_status: str, **fields
    ) -> Optional[Ride]:
        db = get_db()
        doc = await db.rides.find_one_and_update(
            {"ride_id": ride_id, **_status_filter(from_statuses)},
            {"$set": {"status": getattr(to_status, "value", to_status), **fields}},
            projection=NO_ID,
            return_document=ReturnDocument.AFTER,
        )
        return Ride(**doc) if doc else None

    # =========================================================================
    # Memberships
    # =========================================================================

    async def create_membership(self, membership: Membership) -> Membership:
        db = get_db()
        try:
            # Partial unique index "unique_active_membership" guards the pair
            await db.memberships.insert_one(membership.model_dump())
        except DuplicateKeyError:
            raise DuplicateRequestError("You already have an active request for this ride")
        return membership

    async def get_membership(self, membership_id: str) -> Optional[Membership]:
        db = get_db()
        doc = await db.memberships.find_one({"membership_id": membership_id}, NO_ID)
        return Membership(**doc) if doc else None

    async def list_ride_memberships(
        self, ride_id: str, statuses: Optional[Iterable[str]] = None
    ) -> List[Membership]:
        db = get_db()
        query = {"ride_id": ride_id, **_status_filter(statuses)}
        cursor = db.memberships.find(query, NO_ID).sort("joined_at", 1)
        return [Membership(**doc) async for doc in cursor]

    async def list_user_memberships(
        self, user_id: str, statuses: Optional[Iterable[str]] = None
    ) -> List[Membership]:
        db = get_db()
        query = {"user_id": user_id, **_status_filter(statuses)}
        cursor = db.memberships.find(query, NO_ID).sort("joined_at", 1)
        return [Membership(**doc) async for doc in cursor]

    async def transition_membership(
        self, membership_id: str, from_statuses: Iterable[str], to_status: str
    ) -> Optional[Membership]:
        db = get_db()
        doc = await db.memberships.find_one_and_update(
            {"membership_id": membership_id, **_status_filter(from_statuses)},
            {"$set": {"status": getattr(to_status, "value", to_status), "resolved_at": utc_now()}},
            projection=NO_ID,
            return_document=ReturnDocument.AFTER,
        )
        return Membership(**doc) if doc else None

    async def accept_membership(self, membership_id: str) -> Membership:
        db = get_db()

        membership = await db.memberships.find_one({"membership_id": membership_id}, NO_ID)
        if not membership:
            raise MembershipNotFoundError(f"Membership {membership_id} not found")
        if membership["status"] != MembershipStatus.PENDING.value:
            raise InvalidTransitionError(
                f"Cannot accept a request that is {membership['status']}"
            )
        ride_id = membership["ride_id"]

        # RACE CONDITION FIX: check-and-increment in one conditional update.
        # Concurrent accepts on the same ride are serialized by MongoDB.
        ride = await db.rides.find_one_and_update(
            {
                "ride_id": ride_id,
                "status": RideStatus.ACTIVE.value,
                "$expr": {"$lt": ["$seats_taken", "$seats_total"]},
            },
            {"$inc": {"seats_taken": 1}},
            projection=NO_ID,
            return_document=ReturnDocument.AFTER,
        )
        if not ride:
            current = await db.rides.find_one({"ride_id": ride_id}, NO_ID)
            if not current:
                raise RideNotFoundError(f"Ride {ride_id} not found")
            if current["seats_taken"] >= current["seats_total"]:
                raise OverbookingError(f"Ride {ride_id} has no free seats")
            raise InvalidTransitionError(f"Ride {ride_id} is {current['status']}")

        accepted = await db.memberships.find_one_and_update(
            {"membership_id": membership_id, "status": MembershipStatus.PENDING.value},
            {"$set": {"status": MembershipStatus.ACCEPTED.value, "resolved_at": utc_now()}},
            projection=NO_ID,
            return_document=ReturnDocument.AFTER,
        )
        if not accepted:
            # Request was cancelled or resolved between the two updates; give the seat back
            await self.release_seat(ride_id)
            logger.warning(f"Accept lost race for membership {membership_id}, seat released")
            raise InvalidTransitionError("This request was resolved by someone else")

        return Membership(**accepted)

    async def release_seat(self, ride_id: str) -> Optional[Ride]:
        db = get_db()
        doc = await db.rides.find_one_and_update(
            {"ride_id": ride_id, "seats_taken": {"$gt": 0}},
            {"$inc": {"seats_taken": -1}},
            projection=NO_ID,
            return_document=ReturnDocument.AFTER,
        )
        return Ride(**doc) if doc else None

    async def mark_no_show(self, membership_id: str) -> Optional[Membership]:
        db = get_db()
        # {"field": None} also matches documents written before the field existed
        doc = await db.memberships.find_one_and_update(
            {"membership_id": membership_id, "no_show_reported_at": None},
            {"$set": {"no_show_reported_at": utc_now()}},
            projection=NO_ID,
            return_document=ReturnDocument.AFTER,
        )
        return Membership(**doc) if doc else None

    # =========================================================================
    # Profiles
    # =========================================================================

    async def create_profile(self, profile: Profile) -> Profile:
        db = get_db()
        await db.profiles.update_one(
            {"user_id": profile.user_id},
            {"$set": profile.model_dump()},
            upsert=True,
        )
        return profile

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        db = get_db()
        doc = await db.profiles.find_one({"user_id": user_id}, NO_ID)
        return Profile(**doc) if doc else None

    async def get_profiles(self, user_ids: Iterable[str]) -> List[Profile]:
        db = get_db()
        cursor = db.profiles.find({"user_id": {"$in": list(user_ids)}}, NO_ID)
        return [Profile(**doc) async for doc in cursor]

    async def adjust_trust_score(
        self, user_id: str, delta: float, floor: float = TRUST_SCORE_FLOOR
    ) -> Optional[Profile]:
        db = get_db()
        # Pipeline update: the new score is computed from the stored one server-side
        doc = await db.profiles.find_one_and_update(
            {"user_id": user_id},
            [{"$set": {"trust_score": {"$max": [floor, {"$add": ["$trust_score", delta]}]}}}],
            projection=NO_ID,
            return_document=ReturnDocument.AFTER,
        )
        return Profile(**doc) if doc else None

    async def increment_profile_stats(
        self, user_id: str, rides_completed: int = 0, no_show_count: int = 0, credits: int = 0
    ) -> Optional[Profile]:
        db = get_db()
        doc = await db.profiles.find_one_and_update(
            {"user_id": user_id},
            {"$inc": {
                "rides_completed": rides_completed,
                "no_show_count": no_show_count,
                "credits": credits,
            }},
            projection=NO_ID,
            return_document=ReturnDocument.AFTER,
        )
        return Profile(**doc) if doc else None

    async def list_top_profiles(self, field: str, limit: int = 10) -> List[Profile]:
        db = get_db()
        cursor = db.profiles.find({}, NO_ID).sort(field, DESCENDING).limit(limit)
        return [Profile(**doc) async for doc in cursor]

    # =========================================================================
    # Referrals
    # =========================================================================

    async def create_referral(self, referral: Referral) -> Referral:
        db = get_db()
        try:
            await db.referrals.insert_one(referral.model_dump())
        except DuplicateKeyError:
            raise DuplicateReferralError("This user was already referred")
        return referral

    async def get_referral(self, referral_id: str) -> Optional[Referral]:
        db = get_db()
        doc = await db.referrals.find_one({"referral_id": referral_id}, NO_ID)
        return Referral(**doc) if doc else None

    async def get_referral_by_referee(self, referee_id: str) -> Optional[Referral]:
        db = get_db()
        doc = await db.referrals.find_one({"referee_id": referee_id}, NO_ID)
        return Referral(**doc) if doc else None

    async def complete_referral(self, referral_id: str, **fields) -> Optional[Referral]:
        db = get_db()
        doc = await db.referrals.find_one_and_update(
            {"referral_id": referral_id, "status": ReferralStatus.PENDING.value},
            {"$set": {"status": ReferralStatus.COMPLETED.value, **fields}},
            projection=NO_ID,
            return_document=ReturnDocument.AFTER,
        )
        return Referral(**doc) if doc else None

    async def list_referrals(
        self, referrer_id: Optional[str] = None, status: Optional[str] = None
    ) -> List[Referral]:
        db = get_db()
        query = {}
        if referrer_id is not None:
            query["referrer_id"] = referrer_id
        if status is not None:
            query["status"] = getattr(status, "value", status)
        cursor = db.referrals.find(query, NO_ID).sort("created_at", 1)
        return [Referral(**doc) async for doc in cursor]
