"""
Access Resolver

Answers "what may this user do" for the dashboard:

1. An active team seat wins; the governing subscription is the team's.
2. Otherwise the user's own active subscription governs.
3. Team plans additionally expose the roster, and pending invitations for
   the team admin only.

Also owns the admin-only invitation flow.
"""

import logging
from datetime import timedelta
from typing import List, Optional

from fastapi import Depends
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import Settings, get_settings
from app.domain.subscription import (
    AccessSnapshot,
    Subscription,
    TeamInvitation,
    TeamRole,
    is_valid_invitation_email,
)
from app.infrastructure.db.database import get_session
from app.infrastructure.db.models import utcnow
from app.infrastructure.db.repositories import (
    SubscriptionRepository,
    TeamInvitationRepository,
    TeamMembershipRepository,
)
from app.infrastructure.exceptions import (
    AuthorizationError,
    DuplicateInvitationError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)


logger = logging.getLogger(__name__)


class AccessResolver:
    """Resolves the governing subscription and team view for a user."""

    def __init__(self, session: AsyncSession, settings: Settings):
        self._session = session
        self._subscriptions = SubscriptionRepository(session)
        self._memberships = TeamMembershipRepository(session)
        self._invitations = TeamInvitationRepository(session)
        self._invitation_ttl = timedelta(days=settings.invitation_expiry_days)

    # =========================================================================
    # Resolution
    # =========================================================================

    async def resolve(self, user_id: str) -> AccessSnapshot:
        """
        Build the access snapshot for a user.

        Raises:
            PersistenceError: the database could not be read; distinct from
                "no subscription", which is an empty snapshot
        """
        try:
            return await self._resolve(user_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to resolve access for user {user_id}: {e}")
            raise PersistenceError(
                "Failed to load subscription",
                operation="select",
                table="subscriptions",
                original_error=e,
            ) from e

    async def governing_subscription(self, user_id: str) -> Subscription:
        """
        Active subscription (with plan) that grants the user access.

        Raises:
            NotFoundError: neither a team seat nor a direct subscription is active
        """
        membership = await self._memberships.get_active_for_user(user_id)

        subscription: Optional[Subscription] = None
        if membership is not None:
            subscription = await self._subscriptions.get_active_with_plan(
                membership.subscription_id
            )
            if subscription is None:
                logger.info(
                    f"Team subscription {membership.subscription_id} of user {user_id} "
                    f"is not active; checking direct subscription"
                )

        if subscription is None:
            direct = await self._subscriptions.get_active_for_user(user_id)
            if direct is not None:
                subscription = await self._subscriptions.get_active_with_plan(direct.id)

        if subscription is None:
            raise NotFoundError(
                f"No active subscription for user {user_id}",
                details={"user_id": user_id},
            )
        return subscription

    async def _resolve(self, user_id: str) -> AccessSnapshot:
        try:
            subscription = await self.governing_subscription(user_id)
        except NotFoundError:
            logger.debug(f"No active subscription for user {user_id}")
            return AccessSnapshot()

        if not subscription.is_team:
            return AccessSnapshot(subscription=subscription)

        members = await self._memberships.list_active_members(subscription.id)
        own_seat = next((m for m in members if m.user_id == user_id), None)
        is_admin = own_seat is not None and own_seat.role == TeamRole.ADMIN

        invitations: List[TeamInvitation] = []
        if is_admin:
            invitations = await self._invitations.list_pending(subscription.id)

        return AccessSnapshot(
            subscription=subscription,
            team_membership=own_seat,
            team_members=members,
            is_team_admin=is_admin,
            invitations=invitations,
        )

    # =========================================================================
    # Invitations
    # =========================================================================

    async def list_invitations(self, user_id: str) -> List[TeamInvitation]:
        """Pending invitations of the user's team; admins only."""
        snapshot = await self.resolve(user_id)
        self._require_team_admin(snapshot, user_id)
        return snapshot.invitations

    async def send_invitation(self, user_id: str, email: Optional[str]) -> TeamInvitation:
        """
        Invite an email address to the caller's team.

        Raises:
            AuthorizationError: caller is not the admin of an active team
            ValidationError: malformed email
            DuplicateInvitationError: a pending invitation already exists
            PersistenceError: the insert failed
        """
        snapshot = await self.resolve(user_id)
        self._require_team_admin(snapshot, user_id)

        normalized = (email or "").strip().lower()
        if not is_valid_invitation_email(normalized):
            raise ValidationError(
                "Please provide a valid email address",
                details={"email": email},
            )

        subscription_id = snapshot.subscription.id
        try:
            if await self._invitations.has_pending(subscription_id, normalized):
                raise DuplicateInvitationError(normalized, subscription_id)

            invitation = await self._invitations.create_pending(
                subscription_id=subscription_id,
                email=normalized,
                invited_by=user_id,
                expires_at=utcnow() + self._invitation_ttl,
            )
            await self._session.commit()
        except IntegrityError as e:
            # Lost a race against a concurrent invite for the same address
            await self._session.rollback()
            raise DuplicateInvitationError(normalized, subscription_id) from e
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.error(f"Failed to create invitation on subscription {subscription_id}: {e}")
            raise PersistenceError(
                "Failed to send invitation",
                operation="insert",
                table="team_invitations",
                original_error=e,
            ) from e

        logger.info(f"User {user_id} invited {normalized} to subscription {subscription_id}")
        return invitation

    @staticmethod
    def _require_team_admin(snapshot: AccessSnapshot, user_id: str) -> None:
        if snapshot.subscription is None or not snapshot.subscription.is_team:
            raise AuthorizationError(
                "Only team subscriptions can send invitations",
                details={"user_id": user_id},
            )
        if not snapshot.is_team_admin:
            raise AuthorizationError(
                "Only the team admin can manage invitations",
                details={"user_id": user_id},
            )


# =============================================================================
# Dependency Provider
# =============================================================================

def get_access_resolver(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> AccessResolver:
    return AccessResolver(session, settings)
