"""
Team Database Models

Memberships and invitations hang off a team subscription and are
meaningless without it, hence the foreign keys to ``subscriptions.id``.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import DateTime, Index, UniqueConstraint, text
from sqlmodel import Field

from app.infrastructure.db.models.base import TimestampMixin, UUIDMixin, utcnow


class TeamMembershipModel(UUIDMixin, TimestampMixin, table=True):
    """A user's seat on a team; one row per (subscription, user)."""

    __tablename__ = "team_memberships"
    __table_args__ = (
        UniqueConstraint(
            "subscription_id",
            "user_id",
            name="uq_team_memberships_subscription_user",
        ),
    )

    subscription_id: UUID = Field(
        foreign_key="subscriptions.id",
        ondelete="CASCADE",
        index=True,
        nullable=False,
    )
    user_id: str = Field(index=True, nullable=False, max_length=64)
    role: str = Field(default="member", max_length=20)
    status: str = Field(default="active", max_length=20)


class TeamInvitationModel(UUIDMixin, table=True):
    """Pending/accepted/expired invitation to a team subscription."""

    __tablename__ = "team_invitations"
    __table_args__ = (
        Index(
            "uq_team_invitations_pending_email",
            "subscription_id",
            "invited_email",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    subscription_id: UUID = Field(
        foreign_key="subscriptions.id",
        ondelete="CASCADE",
        index=True,
        nullable=False,
    )
    invited_email: str = Field(nullable=False, max_length=320)
    invited_by: str = Field(nullable=False, max_length=64)
    status: str = Field(default="pending", max_length=20)
    expires_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),
    )
