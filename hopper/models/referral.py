"""Referral Model - Credit earned by inviting other students."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hopper.utils.timezone_utils import utc_now


class ReferralStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class Referral(BaseModel):
    referral_id: str
    referrer_id: str
    referee_id: str
    credit_amount: int = Field(..., ge=0)
    status: ReferralStatus = Field(default=ReferralStatus.PENDING)
    created_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(use_enum_values=True)


class ReferralStats(BaseModel):
    total_referrals: int
    completed_referrals: int
    pending_referrals: int
    total_earned: int
    referral_link: str
