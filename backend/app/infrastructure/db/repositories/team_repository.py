"""
Team Repositories

Memberships and invitations of team subscriptions.
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.subscription import (
    InvitationStatus,
    MembershipStatus,
    SubscriptionStatus,
    TeamInvitation,
    TeamMembership,
    TeamRole,
    UserProfile,
)
from app.infrastructure.db.models import (
    SubscriptionModel,
    TeamInvitationModel,
    TeamMembershipModel,
    UserProfileModel,
    utcnow,
)
from app.infrastructure.db.repositories.base_repository import BaseRepository


logger = logging.getLogger(__name__)


class TeamMembershipRepository(BaseRepository[TeamMembershipModel]):
    """Repository for team seats, unique per (subscription, user)."""

    def __init__(self, session: AsyncSession):
        super().__init__(TeamMembershipModel, session)

    async def get_active_for_user(self, user_id: str) -> Optional[TeamMembership]:
        """
        The user's active seat on a team whose subscription is active.

        Seats are not deactivated when a team subscription ends, so seats on
        inactive subscriptions are skipped. If several qualify the oldest
        wins so the result is stable.
        """
        stmt = (
            select(TeamMembershipModel)
            .join(SubscriptionModel, SubscriptionModel.id == TeamMembershipModel.subscription_id)
            .where(
                TeamMembershipModel.user_id == user_id,
                TeamMembershipModel.status == MembershipStatus.ACTIVE.value,
                SubscriptionModel.status == SubscriptionStatus.ACTIVE.value,
            )
            .order_by(TeamMembershipModel.created_at.asc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        model = result.scalars().first()
        return self._to_domain(model) if model else None

    async def get(self, subscription_id: str, user_id: str) -> Optional[TeamMembership]:
        stmt = (
            select(TeamMembershipModel)
            .where(
                TeamMembershipModel.subscription_id == UUID(subscription_id),
                TeamMembershipModel.user_id == user_id,
            )
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def list_active_members(self, subscription_id: str) -> List[TeamMembership]:
        """Active members with their display profile, oldest first."""
        stmt = (
            select(TeamMembershipModel, UserProfileModel)
            .outerjoin(UserProfileModel, UserProfileModel.id == TeamMembershipModel.user_id)
            .where(
                TeamMembershipModel.subscription_id == UUID(subscription_id),
                TeamMembershipModel.status == MembershipStatus.ACTIVE.value,
            )
            .order_by(TeamMembershipModel.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return [self._to_domain(member, profile) for member, profile in result.all()]

    async def upsert(
        self,
        subscription_id: str,
        user_id: str,
        role: TeamRole,
        status: MembershipStatus = MembershipStatus.ACTIVE,
    ) -> TeamMembership:
        """Create or update the seat keyed on (subscription_id, user_id)."""
        now = utcnow()
        stmt = self.insert().values(
            id=uuid4(),
            subscription_id=UUID(subscription_id),
            user_id=user_id,
            role=role.value,
            status=status.value,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["subscription_id", "user_id"],
            set_={
                "role": stmt.excluded.role,
                "status": stmt.excluded.status,
                "updated_at": now,
            },
        )
        await self._session.execute(stmt)

        membership = await self.get(subscription_id, user_id)
        logger.info(
            f"Team membership {membership.id}: user {user_id} is {role.value} "
            f"of subscription {subscription_id}"
        )
        return membership

    def _to_domain(
        self,
        model: TeamMembershipModel,
        profile: Optional[UserProfileModel] = None,
    ) -> TeamMembership:
        return TeamMembership(
            id=str(model.id),
            subscription_id=str(model.subscription_id),
            user_id=model.user_id,
            role=TeamRole(model.role),
            status=MembershipStatus(model.status),
            created_at=model.created_at,
            updated_at=model.updated_at,
            user_profile=UserProfile.model_validate(profile) if profile else None,
        )


class TeamInvitationRepository(BaseRepository[TeamInvitationModel]):
    """Repository for team invitations."""

    def __init__(self, session: AsyncSession):
        super().__init__(TeamInvitationModel, session)

    async def list_pending(self, subscription_id: str) -> List[TeamInvitation]:
        """Pending invitations for a team, newest first."""
        stmt = (
            select(TeamInvitationModel)
            .where(
                TeamInvitationModel.subscription_id == UUID(subscription_id),
                TeamInvitationModel.status == InvitationStatus.PENDING.value,
            )
            .order_by(TeamInvitationModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def has_pending(self, subscription_id: str, email: str) -> bool:
        stmt = (
            select(func.count())
            .select_from(TeamInvitationModel)
            .where(
                TeamInvitationModel.subscription_id == UUID(subscription_id),
                TeamInvitationModel.invited_email == email,
                TeamInvitationModel.status == InvitationStatus.PENDING.value,
            )
        )
        result = await self._session.execute(stmt)
        return result.scalar_one() > 0

    async def create_pending(
        self,
        subscription_id: str,
        email: str,
        invited_by: str,
        expires_at: datetime,
    ) -> TeamInvitation:
        model = await self.add(
            TeamInvitationModel(
                subscription_id=UUID(subscription_id),
                invited_email=email,
                invited_by=invited_by,
                status=InvitationStatus.PENDING.value,
                expires_at=expires_at,
            )
        )
        logger.info(f"Created invitation {model.id} for {email} on subscription {subscription_id}")
        return self._to_domain(model)

    def _to_domain(self, model: TeamInvitationModel) -> TeamInvitation:
        return TeamInvitation(
            id=str(model.id),
            subscription_id=str(model.subscription_id),
            invited_email=model.invited_email,
            invited_by=model.invited_by,
            status=InvitationStatus(model.status),
            expires_at=model.expires_at,
            created_at=model.created_at,
        )
