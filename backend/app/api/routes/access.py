"""
Access API Routes

Dashboard view of the caller's subscription and team.
"""

from fastapi import APIRouter, Depends

from app.api.dependencies import get_current_user_id
from app.domain.subscription import AccessResponse
from app.infrastructure.services.access_resolver import (
    AccessResolver,
    get_access_resolver,
)


router = APIRouter()


@router.get("/access/me", response_model=AccessResponse)
async def get_my_access(
    user_id: str = Depends(get_current_user_id),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    """
    Resolve the caller's governing subscription.

    A user without a subscription gets ``has_access: false``; the client
    sends them to plan selection.
    """
    snapshot = await resolver.resolve(user_id)
    return AccessResponse.from_snapshot(snapshot)
