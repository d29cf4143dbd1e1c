"""
Checkout Service

Validates a purchase request and asks Stripe for a hosted checkout session.
Nothing is stored locally; the subscription row appears when Stripe reports
the completed checkout through the webhook.
"""

import logging
from typing import Optional

from app.config.settings import Settings, get_settings
from app.domain.subscription import CheckoutRequest, CheckoutResponse
from app.infrastructure.exceptions import AuthorizationError, ValidationError
from app.infrastructure.payments.stripe_service import StripeService, get_stripe_service


logger = logging.getLogger(__name__)

# (attribute, wire name)
REQUIRED_FIELDS = (
    ("price_id", "priceId"),
    ("customer_email", "customerEmail"),
    ("user_id", "userId"),
    ("plan_id", "planId"),
)


def validate_checkout_request(request: CheckoutRequest) -> None:
    """
    Reject requests that Stripe or the webhook could not work with.

    Raises:
        ValidationError: a required field is blank or quantity < 1
    """
    missing = [
        wire_name
        for attribute, wire_name in REQUIRED_FIELDS
        if not (getattr(request, attribute) or "").strip()
    ]
    if missing:
        raise ValidationError(
            "Missing required fields: priceId, customerEmail, userId, planId",
            details={"missing_fields": missing},
        )

    if request.quantity < 1:
        raise ValidationError(
            "quantity must be at least 1",
            details={"quantity": request.quantity},
        )


class CheckoutService:
    """Creates Stripe Checkout sessions for plan purchases."""

    def __init__(self, stripe_service: StripeService, settings: Settings):
        self._stripe = stripe_service
        self._frontend_url = settings.frontend_url

    def redirect_urls(self, origin: Optional[str]) -> tuple[str, str]:
        """
        Success and cancel URLs for a request origin.

        Stripe substitutes ``{CHECKOUT_SESSION_ID}`` on redirect.
        """
        base = (origin or self._frontend_url).rstrip("/")
        return (
            f"{base}/success?session_id={{CHECKOUT_SESSION_ID}}",
            f"{base}/checkout",
        )

    def create_session(
        self,
        request: CheckoutRequest,
        origin: Optional[str] = None,
        authenticated_user_id: Optional[str] = None,
    ) -> CheckoutResponse:
        validate_checkout_request(request)

        if authenticated_user_id and authenticated_user_id != request.user_id:
            logger.warning(
                f"User {authenticated_user_id} attempted checkout on behalf of {request.user_id}"
            )
            raise AuthorizationError(
                "Cannot start a checkout for another user",
                details={"user_id": request.user_id},
            )

        success_url, cancel_url = self.redirect_urls(origin)
        session = self._stripe.create_checkout_session(
            request,
            success_url=success_url,
            cancel_url=cancel_url,
        )
        return CheckoutResponse(session_id=session.id, url=session.url)


def get_checkout_service() -> CheckoutService:
    """Dependency provider for CheckoutService."""
    return CheckoutService(get_stripe_service(), get_settings())
