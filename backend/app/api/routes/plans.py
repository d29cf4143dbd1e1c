"""
Plan Catalog and Public Config Routes
"""

from typing import List

from fastapi import APIRouter, Depends

from app.config.settings import Settings, get_settings
from app.domain.subscription import PublicConfigResponse, SubscriptionPlan
from app.infrastructure.db.dependencies import PlanRepoDep


router = APIRouter()


@router.get("/plans", response_model=List[SubscriptionPlan])
async def list_plans(repo: PlanRepoDep):
    """Active plans, cheapest first."""
    return await repo.list_active()


@router.get("/config", response_model=PublicConfigResponse)
async def get_public_config(settings: Settings = Depends(get_settings)):
    """Client-visible keys only; secrets never leave the server."""
    return PublicConfigResponse(**settings.public_config())
