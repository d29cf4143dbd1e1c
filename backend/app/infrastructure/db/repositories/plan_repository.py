"""
Subscription Plan Repository

The API only reads the plan catalog; scripts/seed_plans.py writes it.
"""

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.subscription import SubscriptionPlan
from app.infrastructure.db.models import SubscriptionPlanModel
from app.infrastructure.db.repositories.base_repository import BaseRepository
from app.infrastructure.db.repositories.subscription_repository import plan_to_domain


class PlanRepository(BaseRepository[SubscriptionPlanModel]):
    """Repository for subscription plans."""

    def __init__(self, session: AsyncSession):
        super().__init__(SubscriptionPlanModel, session)

    async def list_active(self) -> List[SubscriptionPlan]:
        """Active plans, cheapest first."""
        stmt = (
            select(SubscriptionPlanModel)
            .where(SubscriptionPlanModel.is_active.is_(True))
            .order_by(SubscriptionPlanModel.price_monthly.asc())
        )
        result = await self._session.execute(stmt)
        return [plan_to_domain(model) for model in result.scalars().all()]


    async def upsert(self, plan: SubscriptionPlan) -> None:
        """Insert or refresh a catalog entry keyed on its id."""
        stmt = self.insert().values(
            id=plan.id,
            name=plan.name,
            description=plan.description,
            price_monthly=plan.price_monthly,
            plan_type=plan.plan_type.value,
            features=plan.features,
            is_active=plan.is_active,
            stripe_price_id=plan.stripe_price_id,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["id"],
            set_={
                "name": stmt.excluded.name,
                "description": stmt.excluded.description,
                "price_monthly": stmt.excluded.price_monthly,
                "plan_type": stmt.excluded.plan_type,
                "features": stmt.excluded.features,
                "is_active": stmt.excluded.is_active,
                "stripe_price_id": stmt.excluded.stripe_price_id,
            },
        )
        await self._session.execute(stmt)
