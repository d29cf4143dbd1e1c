"""
Team API Routes

Invitation management for team subscriptions. Admin only.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_current_user_id
from app.domain.subscription import InvitationRequest, TeamInvitation
from app.infrastructure.services.access_resolver import (
    AccessResolver,
    get_access_resolver,
)


router = APIRouter()


@router.get("/team/invitations", response_model=List[TeamInvitation])
async def list_invitations(
    user_id: str = Depends(get_current_user_id),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    """Pending invitations of the caller's team, newest first."""
    return await resolver.list_invitations(user_id)


@router.post(
    "/team/invitations",
    response_model=TeamInvitation,
    status_code=status.HTTP_201_CREATED,
)
async def send_invitation(
    body: InvitationRequest,
    user_id: str = Depends(get_current_user_id),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    """Invite an email address to the caller's team."""
    return await resolver.send_invitation(user_id, body.email)
