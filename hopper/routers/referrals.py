"""Referrals Router"""

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from hopper.dependencies import get_current_user_id, get_referral_service
from hopper.models.referral import Referral, ReferralStats
from hopper.services.referral_service import ReferralService


router = APIRouter()


class ReferralSignup(BaseModel):
    code: str = Field(..., min_length=1, max_length=200)


@router.get("/me", response_model=ReferralStats)
async def get_my_referral_stats(
    user_id: str = Depends(get_current_user_id),
    referral_service: ReferralService = Depends(get_referral_service),
):
    return await referral_service.get_stats(user_id)


@router.post("", response_model=Referral, status_code=status.HTTP_201_CREATED)
async def track_referral(
    body: ReferralSignup,
    user_id: str = Depends(get_current_user_id),
    referral_service: ReferralService = Depends(get_referral_service),
):
    """Called once when a new user arrives with ?ref=<code>."""
    return await referral_service.track_signup(user_id, body.code)


@router.post("/{referral_id}/complete", response_model=Referral)
async def complete_referral(
    referral_id: str,
    user_id: str = Depends(get_current_user_id),
    referral_service: ReferralService = Depends(get_referral_service),
):
    """Called by the referred user once onboarding is done."""
    return await referral_service.complete_referral(referral_id, user_id)
