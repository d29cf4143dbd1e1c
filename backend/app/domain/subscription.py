"""
Subscription Domain Models

Domain models for plans, subscriptions and teams following Clean Architecture.
Enums, DTOs, and domain entities for the subscription bounded context.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class PlanType(str, Enum):
    """Plan audience."""
    INDIVIDUAL = "individual"
    TEAM = "team"


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status as reported by Stripe."""
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INACTIVE = "inactive"
    TRIALING = "trialing"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    UNPAID = "unpaid"
    PAUSED = "paused"


class TeamRole(str, Enum):
    """Role of a user inside a team subscription."""
    ADMIN = "admin"
    MEMBER = "member"


class MembershipStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


# =============================================================================
# Domain Entities
# =============================================================================

class SubscriptionPlan(BaseModel):
    """Reference pricing plan."""
    id: str
    name: str
    description: Optional[str] = None
    price_monthly: float
    plan_type: PlanType
    features: list[str] = Field(default_factory=list)
    is_active: bool = True
    stripe_price_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class Subscription(BaseModel):
    """Core subscription domain entity."""
    id: Optional[str] = None
    user_id: str
    plan_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    plan: Optional[SubscriptionPlan] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_team(self) -> bool:
        return self.plan is not None and self.plan.plan_type == PlanType.TEAM


class UserProfile(BaseModel):
    """Display data for a user."""
    id: str
    full_name: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TeamMembership(BaseModel):
    """A user's seat on a team subscription."""
    id: str
    subscription_id: str
    user_id: str
    role: TeamRole
    status: MembershipStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user_profile: Optional[UserProfile] = None

    model_config = ConfigDict(from_attributes=True)


class TeamInvitation(BaseModel):
    """Invitation for an email address to join a team subscription."""
    id: str
    subscription_id: str
    invited_email: str
    invited_by: str
    status: InvitationStatus
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AccessSnapshot(BaseModel):
    """
    Everything the dashboard needs to know about a user's access.

    ``subscription`` is None when the user has neither a team seat nor a
    direct subscription; that is a normal state, not an error.
    """
    subscription: Optional[Subscription] = None
    team_membership: Optional[TeamMembership] = None
    team_members: list[TeamMembership] = Field(default_factory=list)
    is_team_admin: bool = False
    invitations: list[TeamInvitation] = Field(default_factory=list)

    @property
    def has_access(self) -> bool:
        return self.subscription is not None


# =============================================================================
# Request/Response DTOs
# =============================================================================

class CheckoutRequest(BaseModel):
    """
    Request DTO for creating a checkout session.

    Required fields are optional at the schema level so that a missing one
    is reported as a domain ValidationError with a readable message.
    """
    price_id: Optional[str] = Field(default=None, alias="priceId")
    quantity: int = Field(default=1)
    customer_email: Optional[str] = Field(default=None, alias="customerEmail")
    user_id: Optional[str] = Field(default=None, alias="userId")
    plan_id: Optional[str] = Field(default=None, alias="planId")
    plan_type: PlanType = Field(default=PlanType.INDIVIDUAL, alias="planType")
    customer_name: Optional[str] = Field(default=None, alias="customerName")
    company_name: Optional[str] = Field(default=None, alias="companyName")

    model_config = ConfigDict(populate_by_name=True)


class CheckoutResponse(BaseModel):
    """Response DTO for checkout session creation."""
    session_id: str = Field(serialization_alias="sessionId")
    url: str


class InvitationRequest(BaseModel):
    """Request DTO for inviting a user to a team."""
    email: str = Field(..., description="Email address to invite")


class AccessResponse(BaseModel):
    """Response DTO for the dashboard access view."""
    has_access: bool
    subscription: Optional[Subscription] = None
    team_membership: Optional[TeamMembership] = None
    team_members: list[TeamMembership] = Field(default_factory=list)
    is_team_admin: bool = False
    invitations: list[TeamInvitation] = Field(default_factory=list)

    @classmethod
    def from_snapshot(cls, snapshot: AccessSnapshot) -> "AccessResponse":
        return cls(
            has_access=snapshot.has_access,
            subscription=snapshot.subscription,
            team_membership=snapshot.team_membership,
            team_members=snapshot.team_members,
            is_team_admin=snapshot.is_team_admin,
            invitations=snapshot.invitations,
        )


class PublicConfigResponse(BaseModel):
    """Client-visible configuration."""
    supabase_url: str
    supabase_anon_key: Optional[str] = None
    stripe_publishable_key: Optional[str] = None


# =============================================================================
# Business Rules
# =============================================================================

def is_valid_invitation_email(email: Optional[str]) -> bool:
    """An invitation target only has to look like an address."""
    return bool(email) and "@" in email
