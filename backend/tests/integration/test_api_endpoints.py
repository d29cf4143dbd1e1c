"""
Integration tests for the API endpoints.

Tests the full request/response cycle.
"""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_current_user_id
from app.infrastructure.exceptions import PaymentProviderError
from app.infrastructure.services.checkout_service import CheckoutService, get_checkout_service
from app.infrastructure.services.webhook_reconciler import get_webhook_reconciler


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, client: TestClient):
        """Root endpoint should return welcome message."""
        response = client.get("/")
        assert response.status_code == 200
        assert "message" in response.json()

    def test_health_endpoint(self, client: TestClient):
        """Health endpoint should return healthy status."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestPublicEndpoints:

    async def test_plans_are_active_and_sorted(self, async_client, seed):
        response = await async_client.get("/api/plans")

        assert response.status_code == 200
        plans = response.json()
        assert [p["id"] for p in plans] == ["individual-monthly", "team-monthly"]
        assert plans[1]["plan_type"] == "team"

    def test_config_has_no_secrets(self, client: TestClient):
        response = client.get("/api/config")

        assert response.status_code == 200
        body = response.json()
        assert body == {
            "supabase_url": "https://testproject.supabase.co",
            "supabase_anon_key": "anon-test-key",
            "stripe_publishable_key": "pk_test_123",
        }
        assert "sk_test_123" not in response.text
        assert "whsec_test_123" not in response.text


class TestCheckoutEndpoint:

    @pytest.fixture
    def checkout(self, app, mock_stripe_service, settings):
        mock_stripe_service.create_checkout_session.return_value = MagicMock(
            id="cs_test_1", url="https://checkout.stripe.com/c/pay/cs_test_1"
        )
        service = CheckoutService(mock_stripe_service, settings)
        app.dependency_overrides[get_checkout_service] = lambda: service
        return mock_stripe_service

    @pytest.fixture
    def body(self):
        return {
            "priceId": "price_individual",
            "customerEmail": "student@example.com",
            "userId": "00000000-0000-0000-0000-000000000001",
            "planId": "individual-monthly",
            "planType": "individual",
            "customerName": "Sam Student",
        }

    def test_creates_session(self, client, checkout, body):
        response = client.post(
            "/api/checkout/sessions", json=body, headers={"Origin": "https://arti.example"}
        )

        assert response.status_code == 200
        assert response.json() == {
            "sessionId": "cs_test_1",
            "url": "https://checkout.stripe.com/c/pay/cs_test_1",
        }
        kwargs = checkout.create_checkout_session.call_args.kwargs
        assert kwargs["success_url"].startswith("https://arti.example/success")

    def test_missing_fields(self, client, checkout):
        response = client.post("/api/checkout/sessions", json={"priceId": "price_1"})

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "ValidationError"
        assert data["message"] == "Missing required fields: priceId, customerEmail, userId, planId"
        checkout.create_checkout_session.assert_not_called()

    def test_quantity_zero(self, client, checkout, body):
        response = client.post("/api/checkout/sessions", json={**body, "quantity": 0})
        assert response.status_code == 400

    def test_token_for_other_user(self, client, checkout, body, token_for):
        response = client.post(
            "/api/checkout/sessions",
            json=body,
            headers={"Authorization": f"Bearer {token_for('someone-else')}"},
        )

        assert response.status_code == 403
        assert response.json()["error"] == "AuthorizationError"

    def test_token_for_same_user(self, client, checkout, body, auth_headers):
        response = client.post("/api/checkout/sessions", json=body, headers=auth_headers)
        assert response.status_code == 200

    def test_provider_failure(self, client, checkout, body):
        checkout.create_checkout_session.side_effect = PaymentProviderError(
            "Error creating checkout session"
        )

        response = client.post("/api/checkout/sessions", json=body)

        assert response.status_code == 500
        assert response.json()["message"] == "Error creating checkout session"


class TestAccessEndpoints:

    @pytest.fixture
    def as_user(self, app):
        def _login(user_id: str):
            app.dependency_overrides[get_current_user_id] = lambda: user_id
        return _login

    async def test_access_requires_auth(self, async_client):
        response = await async_client.get("/api/access/me")
        assert response.status_code == 401

    async def test_no_subscription(self, async_client, seed, as_user):
        as_user("nobody")

        response = await async_client.get("/api/access/me")

        assert response.status_code == 200
        data = response.json()
        assert data["has_access"] is False
        assert data["subscription"] is None

    async def test_team_admin_flow(self, async_client, seed, as_user):
        team = await seed.subscription(
            "admin-1", plan_id="team-monthly", created_at=datetime(2026, 1, 1, tzinfo=timezone.utc)
        )
        await seed.membership(team.id, "admin-1", role="admin")
        as_user("admin-1")

        created = await async_client.post("/api/team/invitations", json={"email": "t@example.com"})
        duplicate = await async_client.post("/api/team/invitations", json={"email": "t@example.com"})
        listed = await async_client.get("/api/team/invitations")
        access = await async_client.get("/api/access/me")

        assert created.status_code == 201
        assert created.json()["status"] == "pending"
        assert duplicate.status_code == 409
        assert duplicate.json()["error"] == "DuplicateInvitationError"
        assert [i["invited_email"] for i in listed.json()] == ["t@example.com"]
        assert access.json()["is_team_admin"] is True
        assert access.json()["subscription"]["plan"]["plan_type"] == "team"

    async def test_member_cannot_invite(self, async_client, seed, as_user):
        team = await seed.subscription("admin-1", plan_id="team-monthly")
        await seed.membership(team.id, "admin-1", role="admin")
        await seed.membership(team.id, "member-1")
        as_user("member-1")

        invite = await async_client.post("/api/team/invitations", json={"email": "t@example.com"})
        access = await async_client.get("/api/access/me")

        assert invite.status_code == 403
        assert access.json()["invitations"] == []
        assert access.json()["is_team_admin"] is False

    async def test_invalid_email(self, async_client, seed, as_user):
        team = await seed.subscription("admin-1", plan_id="team-monthly")
        await seed.membership(team.id, "admin-1", role="admin")
        as_user("admin-1")

        response = await async_client.post("/api/team/invitations", json={"email": "nope"})

        assert response.status_code == 400


class TestIndividualPurchaseFlow:
    """Checkout, then the completion webhook, then the dashboard access view."""

    @pytest.fixture
    def wired(self, app, mock_stripe_service, reconciler, settings):
        mock_stripe_service.create_checkout_session.return_value = MagicMock(
            id="cs_u1", url="https://checkout.stripe.com/c/pay/cs_u1"
        )
        service = CheckoutService(mock_stripe_service, settings)
        app.dependency_overrides[get_checkout_service] = lambda: service
        app.dependency_overrides[get_webhook_reconciler] = lambda: reconciler
        return mock_stripe_service

    async def test_individual_plan_end_to_end(
        self, app, async_client, wired, seed, make_event, stripe_subscription_payload,
    ):
        await seed.plan("plan_individual", "individual", 9.99)

        checkout = await async_client.post("/api/checkout/sessions", json={
            "priceId": "price_123",
            "customerEmail": "u1@example.com",
            "userId": "u1",
            "planId": "plan_individual",
            "planType": "individual",
        })

        assert checkout.status_code == 200
        assert checkout.json()["sessionId"] == "cs_u1"
        request = wired.create_checkout_session.call_args.args[0]
        assert (request.price_id, request.user_id, request.plan_id) == ("price_123", "u1", "plan_individual")

        event = make_event("checkout.session.completed", {
            "id": "cs_u1",
            "client_reference_id": "u1",
            "customer": "cus_test",
            "subscription": "sub_u1",
            "metadata": {"userId": "u1", "planId": "plan_individual", "planType": "individual"},
        })
        wired.verify_webhook_signature.return_value = event
        wired.retrieve_subscription.return_value = stripe_subscription_payload(subscription_id="sub_u1")

        webhook = await async_client.post(
            "/api/webhooks/stripe",
            content=json.dumps(event),
            headers={"stripe-signature": "t=1,v1=valid"},
        )
        assert webhook.status_code == 200

        app.dependency_overrides[get_current_user_id] = lambda: "u1"
        access = await async_client.get("/api/access/me")

        data = access.json()
        assert data["has_access"] is True
        assert data["subscription"]["plan"]["id"] == "plan_individual"
        assert data["subscription"]["plan"]["plan_type"] == "individual"
        assert data["subscription"]["status"] == "active"
        assert data["team_membership"] is None
        assert data["team_members"] == []
        assert data["invitations"] == []
        assert data["is_team_admin"] is False
