"""
Repository Layer for ARTI Ed

Exports all repository classes for dependency injection.
"""

from app.infrastructure.db.repositories.base_repository import BaseRepository
from app.infrastructure.db.repositories.plan_repository import PlanRepository
from app.infrastructure.db.repositories.subscription_repository import (
    SubscriptionRepository,
)
from app.infrastructure.db.repositories.team_repository import (
    TeamInvitationRepository,
    TeamMembershipRepository,
)
from app.infrastructure.db.repositories.webhook_event_repository import (
    WebhookEventRepository,
)


__all__ = [
    # Base
    "BaseRepository",
    # Repositories
    "PlanRepository",
    "SubscriptionRepository",
    "TeamMembershipRepository",
    "TeamInvitationRepository",
    "WebhookEventRepository",
]
