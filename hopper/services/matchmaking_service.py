"""
Matchmaking Service

Decides whether an existing hopper matches a ride someone is about to
create. Matching is a plain AND of three checks:

1. Locality - pickup and drop both "contain" each other (case-insensitive)
2. Date - same calendar day
3. Time - the two flexibility windows overlap

There is no scoring or ranking; matches keep the order of the candidates.
"""

import logging
from datetime import date as date_type, datetime, time as time_type
from typing import Iterable, List, Optional, Union

from hopper.config import settings
from hopper.exceptions import ValidationError
from hopper.models.ride import Ride, RideDraft, RideStatus
from hopper.repositories import HopperRepository, get_repository

logger = logging.getLogger(__name__)

DateLike = Union[str, date_type, datetime]
TimeLike = Union[str, time_type]


# =============================================================================
# Locality
# =============================================================================

def normalize_location(location: Optional[str]) -> str:
    return " ".join((location or "").split()).lower()


def location_match(a: Optional[str], b: Optional[str]) -> bool:
    """
    True if either location is a case-insensitive substring of the other.

    "Tambaram" matches "tambaram railway station". Empty strings never match.
    """
    a_norm = normalize_location(a)
    b_norm = normalize_location(b)
    if not a_norm or not b_norm:
        return False
    return a_norm in b_norm or b_norm in a_norm


# =============================================================================
# Date / Time
# =============================================================================

def normalize_date(value: DateLike) -> date_type:
    """
    Reduce a date, datetime or ISO string to its calendar day.

    "2024-05-01", "2024-05-01T00:00:00Z" and "2024-05-01 18:30:00+05:30" all
    give 2024-05-01; the time-of-day and offset are ignored, not converted.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date_type):
        return value
    text = (value or "").strip() if isinstance(value, str) else ""
    if len(text) > 10 and text[10] not in ("T", " "):
        raise ValidationError(f"Invalid date: {value!r}")
    try:
        return datetime.strptime(text[:10], "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r}")


def is_same_day(a: DateLike, b: DateLike) -> bool:
    return normalize_date(a) == normalize_date(b)


def time_to_minutes(value: TimeLike) -> int:
    """Minutes since midnight for "HH:MM", "HH:MM:SS" or a time object."""
    if isinstance(value, time_type):
        return value.hour * 60 + value.minute

    parts = (value or "").strip().split(":") if isinstance(value, str) else []
    if len(parts) not in (2, 3):
        raise ValidationError(f"Invalid time: {value!r}")
    try:
        numbers = [int(p) for p in parts]
    except ValueError:
        raise ValidationError(f"Invalid time: {value!r}")

    h, m = numbers[0], numbers[1]
    s = numbers[2] if len(numbers) == 3 else 0
    if not (0 <= h < 24 and 0 <= m < 60 and 0 <= s < 60):
        raise ValidationError(f"Invalid time: {value!r}")
    return h * 60 + m


def time_difference_minutes(a: TimeLike, b: TimeLike) -> int:
    # Same-day times only; windows that cross midnight are not supported
    return abs(time_to_minutes(a) - time_to_minutes(b))


def times_overlap(
    time_a: TimeLike, flexibility_a: int, time_b: TimeLike, flexibility_b: int
) -> bool:
    """
    True if [a - fa, a + fa] and [b - fb, b + fb] overlap,
    i.e. |a - b| <= fa + fb.
    """
    if flexibility_a < 0 or flexibility_b < 0:
        raise ValidationError("Flexibility cannot be negative")
    return time_difference_minutes(time_a, time_b) <= flexibility_a + flexibility_b


# =============================================================================
# Match Evaluation
# =============================================================================

def validate_draft(draft: RideDraft) -> None:
    """Raise ValidationError if the draft cannot be matched or created."""
    if not normalize_location(draft.pickup_location):
        raise ValidationError("Pickup location is required")
    if not normalize_location(draft.drop_location):
        raise ValidationError("Drop location is required")
    normalize_date(draft.date)
    time_to_minutes(draft.departure_time)
    if draft.flexibility_minutes < 0:
        raise ValidationError("Flexibility cannot be negative")
    if draft.flexibility_minutes > settings.max_flexibility_minutes:
        raise ValidationError(
            f"Flexibility cannot exceed {settings.max_flexibility_minutes} minutes"
        )


def is_match(draft: RideDraft, candidate: Ride) -> bool:
    """All of locality (both ends), same day and time overlap."""
    return (
        location_match(draft.pickup_location, candidate.pickup_location)
        and location_match(draft.drop_location, candidate.drop_location)
        and is_same_day(draft.date, candidate.date)
        and times_overlap(
            draft.departure_time, draft.flexibility_minutes,
            candidate.departure_time, candidate.flexibility_minutes,
        )
    )


def find_matching_rides(
    draft: RideDraft, candidates: Iterable[Ride], user_id: str
) -> List[Ride]:
    """
    Candidates that match the draft, in input order.

    Rides owned by user_id and rides that are not active are never returned.
    Read-only: the caller decides what to do with the matches.
    """
    validate_draft(draft)

    matches = []
    for candidate in candidates:
        if candidate.owner_id == user_id:
            continue
        if candidate.status != RideStatus.ACTIVE:
            continue
        try:
            if is_match(draft, candidate):
                matches.append(candidate)
        except ValidationError as e:
            logger.warning(f"Skipping malformed ride {candidate.ride_id}: {e}")
    return matches


class MatchmakingService:
    """Runs the evaluator against the active rides in the store."""

    def __init__(self, repository: Optional[HopperRepository] = None):
        self.repository = repository or get_repository()

    async def find_matches(self, user_id: str, draft: RideDraft) -> List[Ride]:
        validate_draft(draft)
        day = normalize_date(draft.date).isoformat()
        candidates = await self.repository.list_active_rides(date=day)
        matches = find_matching_rides(draft, candidates, user_id)
        logger.info(
            f"Match check for {user_id}: {len(matches)} of {len(candidates)} rides on {day}"
        )
        return matches
