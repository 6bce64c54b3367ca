"""
Domain Errors

Every error raised by the hopper services is scoped to a single user action.
The API layer renders them as {"error": code, "message": text}.
"""

from fastapi import status


class HopperError(Exception):
    """Base class for all domain errors."""

    code = "hopper_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class ValidationError(HopperError):
    """Missing or malformed input (empty location, invalid date/time...)."""

    code = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFoundError(HopperError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class RideNotFoundError(NotFoundError):
    code = "ride_not_found"


class MembershipNotFoundError(NotFoundError):
    code = "membership_not_found"


class ProfileNotFoundError(NotFoundError):
    code = "profile_not_found"


class ReferralNotFoundError(NotFoundError):
    code = "referral_not_found"


class NotAuthorizedError(HopperError):
    """Action attempted by someone other than the ride host / requester."""

    code = "not_authorized"
    status_code = status.HTTP_403_FORBIDDEN


class DuplicateRequestError(HopperError):
    """An active (pending or accepted) membership already exists for the pair."""

    code = "duplicate_request"
    status_code = status.HTTP_409_CONFLICT


class DuplicateReferralError(HopperError):
    code = "duplicate_referral"
    status_code = status.HTTP_409_CONFLICT


class OverbookingError(HopperError):
    """Accept attempted on a ride with no free seat."""

    code = "overbooking"
    status_code = status.HTTP_409_CONFLICT


class InvalidTransitionError(HopperError):
    code = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT
