"""
Subscription Database Model

SQLModel table for subscription data persistence.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field

from app.infrastructure.db.models.base import TimestampMixin, UUIDMixin


class SubscriptionModel(UUIDMixin, TimestampMixin, table=True):
    """
    Subscription table keyed for upserts on the Stripe subscription id.

    Rows are never deleted; cancellation is a status change.
    """

    __tablename__ = "subscriptions"

    user_id: str = Field(index=True, nullable=False, max_length=64)
    plan_id: Optional[str] = Field(default=None, foreign_key="subscription_plans.id")

    # Stripe IDs
    stripe_subscription_id: Optional[str] = Field(default=None, unique=True, index=True)
    stripe_customer_id: Optional[str] = Field(default=None, index=True)

    status: str = Field(default="inactive", index=True, max_length=32)

    # Billing period dates
    current_period_start: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    current_period_end: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
