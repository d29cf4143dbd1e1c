"""
Subscription Plan Database Model

Read-only reference data for the plan selection page.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Column, DateTime, JSON
from sqlmodel import Field, SQLModel

from app.infrastructure.db.models.base import utcnow


class SubscriptionPlanModel(SQLModel, table=True):
    """Maps to the 'subscription_plans' table."""

    __tablename__ = "subscription_plans"

    id: str = Field(primary_key=True, max_length=64)
    name: str = Field(max_length=100)
    description: Optional[str] = Field(default=None)
    price_monthly: float = Field(default=0.0)
    plan_type: str = Field(default="individual", max_length=20)
    features: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    is_active: bool = Field(default=True, index=True)
    stripe_price_id: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime(timezone=True),
    )
