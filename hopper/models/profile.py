"""Profile Model - Student profile with the trust score."""

from datetime import datetime

from pydantic import BaseModel, Field

from hopper.utils.timezone_utils import utc_now

DEFAULT_TRUST_SCORE = 4.0
TRUST_SCORE_FLOOR = 1.0


def adjust_trust_score(old_score: float, delta: float, floor: float = TRUST_SCORE_FLOOR) -> float:
    """new = max(floor, old + delta)"""
    return max(floor, old_score + delta)


class Profile(BaseModel):
    """
    Profile model.

    trust_score is only ever changed through the trust service and never
    drops below TRUST_SCORE_FLOOR.
    """
    user_id: str = Field(..., description="Profile owner")
    name: str = Field(default="Student")
    trust_score: float = Field(default=DEFAULT_TRUST_SCORE, ge=TRUST_SCORE_FLOOR)
    phone_verified: bool = Field(default=False)
    profile_complete: bool = Field(default=False)
    rides_completed: int = Field(default=0, ge=0)
    no_show_count: int = Field(default=0, ge=0)
    credits: int = Field(default=0, ge=0, description="Referral credits in rupees")
    created_at: datetime = Field(default_factory=utc_now)


class ProfileCreate(BaseModel):
    """
    Data a student may set when creating their profile.

    phone_verified is not accepted here; only the verification flow sets it.
    """
    name: str = Field(..., min_length=1, max_length=100)
    profile_complete: bool = False
