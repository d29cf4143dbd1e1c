"""
SQLModel ORM Models for ARTI Ed

Exports all database models for Alembic autogenerate and application use.
Import models here to register them with SQLModel.metadata.
"""

from app.infrastructure.db.models.base import (
    TimestampMixin,
    UUIDMixin,
    utcnow,
)
from app.infrastructure.db.models.plan import SubscriptionPlanModel
from app.infrastructure.db.models.subscription import SubscriptionModel
from app.infrastructure.db.models.team import (
    TeamMembershipModel,
    TeamInvitationModel,
)
from app.infrastructure.db.models.user_profile import UserProfileModel
from app.infrastructure.db.models.webhook_event import ProcessedWebhookEvent


__all__ = [
    # Base
    "TimestampMixin",
    "UUIDMixin",
    "utcnow",
    # Billing
    "SubscriptionPlanModel",
    "SubscriptionModel",
    "ProcessedWebhookEvent",
    # Teams
    "TeamMembershipModel",
    "TeamInvitationModel",
    "UserProfileModel",
]
