"""
Memberships Router

Join requests and host approvals.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from hopper.dependencies import get_current_user_id, get_membership_service
from hopper.models.membership import Membership
from hopper.services.membership_service import MembershipService


router = APIRouter()


@router.post("/rides/{ride_id}/requests", response_model=Membership,
             status_code=status.HTTP_201_CREATED)
async def request_join(
    ride_id: str,
    user_id: str = Depends(get_current_user_id),
    membership_service: MembershipService = Depends(get_membership_service),
):
    """Ask the host for a seat. One active request per ride."""
    return await membership_service.request_join(ride_id, user_id)


@router.get("/rides/{ride_id}/requests", response_model=List[Membership])
async def list_pending_requests(
    ride_id: str,
    user_id: str = Depends(get_current_user_id),
    membership_service: MembershipService = Depends(get_membership_service),
):
    """Pending requests for a ride (host only)."""
    return await membership_service.list_pending_requests(ride_id, user_id)


@router.get("/rides/{ride_id}/members")
async def list_ride_members(
    ride_id: str,
    membership_service: MembershipService = Depends(get_membership_service),
):
    return await membership_service.list_ride_members(ride_id)


@router.get("/memberships/mine", response_model=List[Membership])
async def list_my_requests(
    user_id: str = Depends(get_current_user_id),
    membership_service: MembershipService = Depends(get_membership_service),
):
    return await membership_service.list_user_requests(user_id)


@router.post("/memberships/{membership_id}/accept", response_model=Membership)
async def accept_request(
    membership_id: str,
    user_id: str = Depends(get_current_user_id),
    membership_service: MembershipService = Depends(get_membership_service),
):
    return await membership_service.accept(membership_id, user_id)


@router.post("/memberships/{membership_id}/reject", response_model=Membership)
async def reject_request(
    membership_id: str,
    user_id: str = Depends(get_current_user_id),
    membership_service: MembershipService = Depends(get_membership_service),
):
    return await membership_service.reject(membership_id, user_id)


@router.post("/memberships/{membership_id}/cancel", response_model=Membership)
async def cancel_request(
    membership_id: str,
    user_id: str = Depends(get_current_user_id),
    membership_service: MembershipService = Depends(get_membership_service),
):
    return await membership_service.cancel(membership_id, user_id)
