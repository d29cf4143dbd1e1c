"""
Subscription Repository

Data access layer for subscription persistence.
Every write is keyed on the Stripe subscription id so webhook handlers can
be replayed safely.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.subscription import (
    PlanType,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
)
from app.infrastructure.db.models import (
    SubscriptionModel,
    SubscriptionPlanModel,
    utcnow,
)
from app.infrastructure.db.repositories.base_repository import BaseRepository


logger = logging.getLogger(__name__)


class SubscriptionRepository(BaseRepository[SubscriptionModel]):
    """
    Repository for subscription data access.

    Rows are never deleted; cancellation is a status update.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(SubscriptionModel, session)

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get_by_stripe_subscription_id(
        self,
        stripe_subscription_id: str,
    ) -> Optional[Subscription]:
        """
        Get subscription by Stripe subscription ID.

        Args:
            stripe_subscription_id: Stripe subscription ID

        Returns:
            Subscription domain model or None
        """
        statement = select(SubscriptionModel).where(
            SubscriptionModel.stripe_subscription_id == stripe_subscription_id
        ).execution_options(populate_existing=True)
        result = await self._session.execute(statement)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def get_active_for_user(self, user_id: str) -> Optional[Subscription]:
        """Most recent active subscription owned directly by the user."""
        statement = (
            select(SubscriptionModel)
            .where(
                SubscriptionModel.user_id == user_id,
                SubscriptionModel.status == SubscriptionStatus.ACTIVE.value,
            )
            .order_by(SubscriptionModel.created_at.desc())
            .limit(1)
        )
        result = await self._session.execute(statement)
        model = result.scalars().first()
        return self._to_domain(model) if model else None

    async def get_active_with_plan(self, subscription_id: str) -> Optional[Subscription]:
        """
        Active subscription joined with its plan.

        Returns None when the row is missing or no longer active.
        """
        statement = (
            select(SubscriptionModel, SubscriptionPlanModel)
            .outerjoin(
                SubscriptionPlanModel,
                SubscriptionPlanModel.id == SubscriptionModel.plan_id,
            )
            .where(
                SubscriptionModel.id == UUID(subscription_id),
                SubscriptionModel.status == SubscriptionStatus.ACTIVE.value,
            )
        ).execution_options(populate_existing=True)
        result = await self._session.execute(statement)
        row = result.first()
        if row is None:
            return None

        model, plan = row
        return self._to_domain(model, plan)

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def upsert(
        self,
        *,
        user_id: str,
        plan_id: Optional[str],
        stripe_subscription_id: str,
        stripe_customer_id: Optional[str],
        status: SubscriptionStatus,
        current_period_start: Optional[datetime],
        current_period_end: Optional[datetime],
    ) -> Subscription:
        """
        Create or update a subscription keyed on the Stripe subscription id.

        Uses INSERT .. ON CONFLICT so concurrent deliveries serialize on the
        unique index instead of racing on a read-then-write.
        """
        now = utcnow()
        values = {
            "user_id": user_id,
            "plan_id": plan_id,
            "stripe_subscription_id": stripe_subscription_id,
            "stripe_customer_id": stripe_customer_id,
            "status": status.value,
            "current_period_start": current_period_start,
            "current_period_end": current_period_end,
            "updated_at": now,
        }

        stmt = self.insert().values(id=uuid4(), created_at=now, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["stripe_subscription_id"],
            set_={
                "user_id": stmt.excluded.user_id,
                "plan_id": stmt.excluded.plan_id,
                "stripe_customer_id": stmt.excluded.stripe_customer_id,
                "status": stmt.excluded.status,
                "current_period_start": stmt.excluded.current_period_start,
                "current_period_end": stmt.excluded.current_period_end,
                "updated_at": now,
            },
        )
        await self._session.execute(stmt)

        subscription = await self.get_by_stripe_subscription_id(stripe_subscription_id)
        logger.info(
            f"Upserted subscription {subscription.id} "
            f"(stripe={stripe_subscription_id}, status={status.value}) for user {user_id}"
        )
        return subscription

    async def update_by_stripe_subscription_id(
        self,
        stripe_subscription_id: str,
        **fields,
    ) -> bool:
        """
        Update columns of the row matching a Stripe subscription id.

        Enum values are stored as their string value.

        Returns:
            True if a row matched, False otherwise
        """
        values = {
            key: value.value if isinstance(value, SubscriptionStatus) else value
            for key, value in fields.items()
        }
        values["updated_at"] = utcnow()

        statement = (
            update(SubscriptionModel)
            .where(SubscriptionModel.stripe_subscription_id == stripe_subscription_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(statement)
        return result.rowcount > 0

    # =========================================================================
    # Mapping Methods
    # =========================================================================

    def _to_domain(
        self,
        model: SubscriptionModel,
        plan: Optional[SubscriptionPlanModel] = None,
    ) -> Subscription:
        """Convert database model to domain entity."""
        try:
            status = SubscriptionStatus(model.status)
        except ValueError:
            logger.warning(
                f"Subscription {model.id} has unrecognized status {model.status!r}"
            )
            status = SubscriptionStatus.INACTIVE

        return Subscription(
            id=str(model.id),
            user_id=model.user_id,
            plan_id=model.plan_id,
            stripe_subscription_id=model.stripe_subscription_id,
            stripe_customer_id=model.stripe_customer_id,
            status=status,
            current_period_start=model.current_period_start,
            current_period_end=model.current_period_end,
            created_at=model.created_at,
            updated_at=model.updated_at,
            plan=plan_to_domain(plan) if plan else None,
        )


def plan_to_domain(model: SubscriptionPlanModel) -> SubscriptionPlan:
    """Convert a plan row to its domain entity."""
    return SubscriptionPlan(
        id=model.id,
        name=model.name,
        description=model.description,
        price_monthly=float(model.price_monthly),
        plan_type=PlanType(model.plan_type),
        features=list(model.features or []),
        is_active=model.is_active,
        stripe_price_id=model.stripe_price_id,
    )
