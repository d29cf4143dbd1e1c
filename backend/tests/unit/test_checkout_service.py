"""
Unit tests for checkout request validation and session creation.
"""

from unittest.mock import MagicMock

import pytest

from app.domain.subscription import CheckoutRequest
from app.infrastructure.exceptions import AuthorizationError, ValidationError
from app.infrastructure.services.checkout_service import (
    CheckoutService,
    validate_checkout_request,
)


VALID = {
    "priceId": "price_individual",
    "customerEmail": "student@example.com",
    "userId": "user-1",
    "planId": "individual-monthly",
}


@pytest.fixture
def service(mock_stripe_service, settings) -> CheckoutService:
    mock_stripe_service.create_checkout_session.return_value = MagicMock(
        id="cs_test_1", url="https://checkout.stripe.com/c/pay/cs_test_1"
    )
    return CheckoutService(mock_stripe_service, settings)


class TestValidation:

    @pytest.mark.parametrize("field", ["priceId", "customerEmail", "userId", "planId"])
    def test_missing_required_field(self, field):
        request = CheckoutRequest(**{k: v for k, v in VALID.items() if k != field})

        with pytest.raises(ValidationError) as exc_info:
            validate_checkout_request(request)

        assert exc_info.value.message == "Missing required fields: priceId, customerEmail, userId, planId"
        assert exc_info.value.details["missing_fields"] == [field]

    def test_blank_field_counts_as_missing(self):
        with pytest.raises(ValidationError):
            validate_checkout_request(CheckoutRequest(**{**VALID, "userId": "   "}))

    def test_quantity_below_one(self):
        with pytest.raises(ValidationError, match="quantity"):
            validate_checkout_request(CheckoutRequest(**VALID, quantity=0))

    def test_defaults(self):
        request = CheckoutRequest(**VALID)
        validate_checkout_request(request)
        assert request.quantity == 1
        assert request.plan_type.value == "individual"


class TestCreateSession:

    def test_redirect_urls_use_origin(self, service, mock_stripe_service):
        response = service.create_session(CheckoutRequest(**VALID), origin="https://arti.example")

        assert response.session_id == "cs_test_1"
        kwargs = mock_stripe_service.create_checkout_session.call_args.kwargs
        assert kwargs["success_url"] == "https://arti.example/success?session_id={CHECKOUT_SESSION_ID}"
        assert kwargs["cancel_url"] == "https://arti.example/checkout"

    def test_redirect_urls_fall_back_to_frontend_url(self, service, mock_stripe_service):
        service.create_session(CheckoutRequest(**VALID))

        kwargs = mock_stripe_service.create_checkout_session.call_args.kwargs
        assert kwargs["cancel_url"] == "http://localhost:3000/checkout"

    def test_invalid_request_makes_no_provider_call(self, service, mock_stripe_service):
        with pytest.raises(ValidationError):
            service.create_session(CheckoutRequest(priceId="price_1"))

        mock_stripe_service.create_checkout_session.assert_not_called()

    def test_token_subject_must_match_user(self, service, mock_stripe_service):
        with pytest.raises(AuthorizationError):
            service.create_session(CheckoutRequest(**VALID), authenticated_user_id="someone-else")

        mock_stripe_service.create_checkout_session.assert_not_called()

    def test_matching_token_subject(self, service):
        response = service.create_session(CheckoutRequest(**VALID), authenticated_user_id="user-1")
        assert response.url.startswith("https://checkout.stripe.com/")
