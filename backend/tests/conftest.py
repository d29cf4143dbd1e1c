"""
Test configuration and fixtures for ARTI Ed.

Provides shared fixtures for unit and integration tests. Tests run against
an in-memory SQLite database; Stripe and the Supabase JWKS endpoint are
mocked.
"""

import os

# Settings are read on first import of the app; pin them before that.
TEST_ENV = {
    "SUPABASE_URL": "https://testproject.supabase.co",
    "SUPABASE_ANON_KEY": "anon-test-key",
    "SUPABASE_SERVICE_ROLE_KEY": "service-role-test-key",
    "SUPABASE_JWT_SECRET": "test-jwt-secret-0123456789-abcdefghijklmnop",
    "STRIPE_SECRET_KEY": "sk_test_123",
    "STRIPE_WEBHOOK_SECRET": "whsec_test_123",
    "STRIPE_PUBLISHABLE_KEY": "pk_test_123",
    "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
    "ENVIRONMENT": "testing",
    "FRONTEND_URL": "http://localhost:3000",
}
os.environ.update(TEST_ENV)

import time
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Optional
from unittest.mock import MagicMock, patch
from uuid import UUID, uuid4

import jwt
import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from app.config.settings import Settings
from app.infrastructure.db.database import DatabaseManager
from app.infrastructure.db.models import (
    SubscriptionModel,
    SubscriptionPlanModel,
    TeamInvitationModel,
    TeamMembershipModel,
    UserProfileModel,
)
from app.infrastructure.payments.stripe_service import StripeService
from app.infrastructure.services.webhook_reconciler import WebhookReconciler


INDIVIDUAL_PLAN_ID = "individual-monthly"
TEAM_PLAN_ID = "team-monthly"


# =============================================================================
# Settings / Database Fixtures
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
async def db_manager(settings) -> AsyncGenerator[DatabaseManager, None]:
    """Fresh in-memory database per test."""
    manager = DatabaseManager(settings)
    await manager.create_tables()
    yield manager
    await manager.close()


@pytest.fixture
def session_factory(db_manager):
    return db_manager.session_factory


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


class Seeder:
    """Inserts rows directly, bypassing the code under test."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    async def _add(self, model):
        async with self._session_factory() as session:
            session.add(model)
            await session.commit()
            await session.refresh(model)
        return model

    async def plan(self, plan_id: str, plan_type: str, price: float, is_active: bool = True):
        return await self._add(
            SubscriptionPlanModel(
                id=plan_id,
                name=plan_id.replace("-", " ").title(),
                description=f"{plan_type} plan",
                price_monthly=price,
                plan_type=plan_type,
                features=["Lesson library", "Progress tracking"],
                is_active=is_active,
                stripe_price_id=f"price_{plan_id}",
            )
        )

    async def subscription(
        self,
        user_id: str,
        plan_id: str = INDIVIDUAL_PLAN_ID,
        status: str = "active",
        stripe_subscription_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> SubscriptionModel:
        now = created_at or datetime.now(timezone.utc)
        return await self._add(
            SubscriptionModel(
                user_id=user_id,
                plan_id=plan_id,
                stripe_subscription_id=stripe_subscription_id or f"sub_{uuid4().hex[:12]}",
                stripe_customer_id="cus_test",
                status=status,
                created_at=now,
                updated_at=now,
            )
        )

    async def membership(
        self,
        subscription_id: UUID,
        user_id: str,
        role: str = "member",
        status: str = "active",
        created_at: Optional[datetime] = None,
    ) -> TeamMembershipModel:
        now = created_at or datetime.now(timezone.utc)
        return await self._add(
            TeamMembershipModel(
                subscription_id=subscription_id,
                user_id=user_id,
                role=role,
                status=status,
                created_at=now,
                updated_at=now,
            )
        )

    async def invitation(
        self,
        subscription_id: UUID,
        email: str,
        invited_by: str,
        status: str = "pending",
        created_at: Optional[datetime] = None,
    ) -> TeamInvitationModel:
        now = created_at or datetime.now(timezone.utc)
        return await self._add(
            TeamInvitationModel(
                subscription_id=subscription_id,
                invited_email=email,
                invited_by=invited_by,
                status=status,
                expires_at=now + timedelta(days=7),
                created_at=now,
            )
        )

    async def profile(self, user_id: str, full_name: str) -> UserProfileModel:
        return await self._add(UserProfileModel(id=user_id, full_name=full_name))


@pytest.fixture
async def seed(session_factory) -> Seeder:
    """Seeder with the standard plan catalog already inserted."""
    seeder = Seeder(session_factory)
    await seeder.plan(INDIVIDUAL_PLAN_ID, "individual", 9.99)
    await seeder.plan(TEAM_PLAN_ID, "team", 29.99)
    await seeder.plan("legacy-monthly", "individual", 4.99, is_active=False)
    return seeder


# =============================================================================
# Mock Fixtures
# =============================================================================

@pytest.fixture
def mock_stripe_service():
    """StripeService double; configure return values per test."""
    return MagicMock(spec=StripeService)


@pytest.fixture
def reconciler(mock_stripe_service, session_factory) -> WebhookReconciler:
    return WebhookReconciler(mock_stripe_service, session_factory)


@pytest.fixture(autouse=True)
def offline_jwks():
    """Make JWKS lookups fail fast so tokens are verified with the HS256 secret."""
    client = MagicMock()
    client.get_signing_key_from_jwt.side_effect = jwt.exceptions.PyJWKClientError("offline")
    with patch("app.api.dependencies._get_jwks_client", return_value=client):
        yield client


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app(db_manager):
    """FastAPI application wired to the test database."""
    from app.infrastructure.db.database import get_session
    from app.main import app

    async def _get_test_session():
        async with db_manager.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = _get_test_session
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Get synchronous test client (no database access)."""
    return TestClient(app)


@pytest.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Get async test client sharing the test event loop with the database."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# =============================================================================
# Auth Fixtures
# =============================================================================

@pytest.fixture
def mock_user_id() -> str:
    return "00000000-0000-0000-0000-000000000001"


def make_token(user_id: str, expires_in: int = 3600, secret: Optional[str] = None) -> str:
    """HS256 Supabase-style access token signed with the test secret."""
    now = int(time.time())
    payload = {
        "sub": user_id,
        "aud": "authenticated",
        "iss": f"{TEST_ENV['SUPABASE_URL']}/auth/v1",
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, secret or TEST_ENV["SUPABASE_JWT_SECRET"], algorithm="HS256")


@pytest.fixture
def auth_headers(mock_user_id) -> dict:
    return {"Authorization": f"Bearer {make_token(mock_user_id)}"}


# =============================================================================
# Stripe Payload Fixtures
# =============================================================================

def stripe_event(event_type: str, obj: dict, event_id: Optional[str] = None) -> dict:
    """Minimal Stripe event envelope."""
    return {
        "id": event_id or f"evt_{uuid4().hex[:16]}",
        "object": "event",
        "type": event_type,
        "data": {"object": obj},
    }


@pytest.fixture
def stripe_subscription_payload():
    """Factory for Stripe subscription objects."""
    def _make(
        subscription_id: str = "sub_test",
        status: str = "active",
        user_id: Optional[str] = None,
        plan_id: Optional[str] = None,
        plan_type: Optional[str] = None,
        period_start: int = 1760000000,
        period_end: int = 1762592000,
    ) -> dict:
        metadata = {}
        if user_id:
            metadata["userId"] = user_id
        if plan_id:
            metadata["planId"] = plan_id
        if plan_type:
            metadata["planType"] = plan_type
        return {
            "id": subscription_id,
            "object": "subscription",
            "customer": "cus_test",
            "status": status,
            "current_period_start": period_start,
            "current_period_end": period_end,
            "metadata": metadata,
        }
    return _make


@pytest.fixture
def make_event():
    return stripe_event


@pytest.fixture
def token_for():
    return make_token
