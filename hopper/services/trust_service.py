"""
Trust Service

Trust score bookkeeping. The adjustment rule is the pure
adjust_trust_score; the store applies it atomically so concurrent deltas
on one profile all land.
"""

import logging
from typing import Optional

from hopper.exceptions import ProfileNotFoundError
from hopper.models.profile import TRUST_SCORE_FLOOR, Profile, adjust_trust_score  # noqa: F401
from hopper.repositories import HopperRepository, get_repository

logger = logging.getLogger(__name__)

RIDE_COMPLETED_DELTA = 1.0
CANCELLED_AFTER_LOCK_DELTA = -2.0
NO_SHOW_DELTA = -5.0


class TrustService:
    """Applies trust score deltas to stored profiles."""

    def __init__(self, repository: Optional[HopperRepository] = None):
        self.repository = repository or get_repository()

    async def apply_delta(self, user_id: str, delta: float) -> Profile:
        updated = await self.repository.adjust_trust_score(user_id, delta, TRUST_SCORE_FLOOR)
        if not updated:
            raise ProfileNotFoundError(f"Profile {user_id} not found")

        logger.info(f"Trust score for {user_id} is now {updated.trust_score} (delta {delta:+})")
        return updated

    async def reward_ride_completion(self, user_id: str) -> Profile:
        await self.repository.increment_profile_stats(user_id, rides_completed=1)
        return await self.apply_delta(user_id, RIDE_COMPLETED_DELTA)

    async def penalize_late_cancellation(self, host_id: str) -> Profile:
        return await self.apply_delta(host_id, CANCELLED_AFTER_LOCK_DELTA)

    async def record_no_show(self, user_id: str) -> Profile:
        await self.repository.increment_profile_stats(user_id, no_show_count=1)
        return await self.apply_delta(user_id, NO_SHOW_DELTA)
