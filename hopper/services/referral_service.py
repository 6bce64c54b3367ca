"""
Referral Service

Students earn a credit for every friend who signs up with their link and
completes onboarding.
"""

import base64
import binascii
import logging
import uuid
from typing import List, Optional

from hopper.config import settings
from hopper.exceptions import (
    DuplicateReferralError,
    NotAuthorizedError,
    ReferralNotFoundError,
    ValidationError,
)
from hopper.models.referral import Referral, ReferralStats, ReferralStatus
from hopper.repositories import HopperRepository, get_repository
from hopper.utils.timezone_utils import utc_now

logger = logging.getLogger(__name__)


def generate_referral_code(user_id: str) -> str:
    """URL-safe base64 of the user id, padding stripped."""
    return base64.urlsafe_b64encode(user_id.encode("utf-8")).decode("ascii").rstrip("=")


def decode_referral_code(code: str) -> str:
    """Inverse of generate_referral_code. Raises ValidationError on garbage."""
    code = (code or "").strip()
    if not code:
        raise ValidationError("Referral code is required")
    padded = code + "=" * (-len(code) % 4)
    try:
        user_id = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError):
        raise ValidationError("Invalid referral code")
    if not user_id:
        raise ValidationError("Invalid referral code")
    return user_id


def referral_link(user_id: str) -> str:
    return f"{settings.app_base_url.rstrip('/')}/?ref={generate_referral_code(user_id)}"


class ReferralService:
    """Tracks referrals and credits referrers."""

    def __init__(self, repository: Optional[HopperRepository] = None):
        self.repository = repository or get_repository()

    async def track_signup(self, new_user_id: str, code: str) -> Referral:
        """Record a pending referral for a new user who arrived via a link."""
        referrer_id = decode_referral_code(code)
        if referrer_id == new_user_id:
            raise ValidationError("You cannot refer yourself")
        if not await self.repository.get_profile(referrer_id):
            raise ValidationError("Referral code does not belong to any user")
        if await self.repository.get_referral_by_referee(new_user_id):
            raise DuplicateReferralError("This user was already referred")

        # Unique index on referee_id still guards concurrent signups
        referral = await self.repository.create_referral(
            Referral(
                referral_id=str(uuid.uuid4()),
                referrer_id=referrer_id,
                referee_id=new_user_id,
                credit_amount=settings.referral_credit,
            )
        )
        logger.info(f"Referral {referral.referral_id}: {referrer_id} -> {new_user_id}")
        return referral

    async def complete_referral(self, referral_id: str, actor_id: str) -> Referral:
        """
        Mark a referral completed and credit the referrer.

        Only the referee completes their own referral, when they finish
        onboarding. Idempotent: completing twice credits once.
        """
        referral = await self.repository.get_referral(referral_id)
        if not referral:
            raise ReferralNotFoundError(f"Referral {referral_id} not found")
        if referral.referee_id != actor_id:
            logger.warning(f"User {actor_id} tried to complete referral {referral_id}")
            raise NotAuthorizedError("Only the referred user can complete this referral")
        if referral.status == ReferralStatus.COMPLETED:
            return referral

        completed = await self.repository.complete_referral(referral_id, completed_at=utc_now())
        if not completed:
            # Completed concurrently; the other call did the crediting
            return await self.repository.get_referral(referral_id)

        await self.repository.increment_profile_stats(
            completed.referrer_id, credits=completed.credit_amount
        )
        logger.info(
            f"Referral completed: {completed.referrer_id} earned ₹{completed.credit_amount}"
        )
        return completed

    async def get_stats(self, user_id: str) -> ReferralStats:
        referrals = await self.repository.list_referrals(referrer_id=user_id)
        completed = [r for r in referrals if r.status == ReferralStatus.COMPLETED]
        pending = [r for r in referrals if r.status == ReferralStatus.PENDING]

        return ReferralStats(
            total_referrals=len(referrals),
            completed_referrals=len(completed),
            pending_referrals=len(pending),
            total_earned=sum(r.credit_amount for r in completed),
            referral_link=referral_link(user_id),
        )

    async def top_referrers(self, limit: int = 10) -> List[dict]:
        """[{referrer_id, count, earnings}] ordered by completed referrals."""
        completed = await self.repository.list_referrals(status=ReferralStatus.COMPLETED)

        counts = {}
        earnings = {}
        for r in completed:
            counts[r.referrer_id] = counts.get(r.referrer_id, 0) + 1
            earnings[r.referrer_id] = earnings.get(r.referrer_id, 0) + r.credit_amount

        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)[:limit]
        return [
            {"referrer_id": rid, "count": count, "earnings": earnings[rid]}
            for rid, count in ranked
        ]
