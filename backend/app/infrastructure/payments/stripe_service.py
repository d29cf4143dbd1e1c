"""
Stripe Payment Service

Clean Architecture infrastructure service for Stripe payment processing.
Handles checkout sessions, subscription lookups and webhook verification.

The API key is passed on every call rather than set on the ``stripe``
module, so several configurations can coexist in one process.
"""

import logging
from functools import lru_cache
from typing import Any, Dict, Mapping

import stripe
from stripe import StripeError

from app.config.settings import Settings, get_settings
from app.domain.subscription import CheckoutRequest
from app.infrastructure.exceptions import PaymentProviderError, SignatureError


logger = logging.getLogger(__name__)


def as_dict(obj: Any) -> Dict[str, Any]:
    """Plain dict view of a Stripe object."""
    if isinstance(obj, dict):
        return obj
    return obj.to_dict()


class StripeService:
    """
    Stripe payment processing service.

    All methods are stateless; configuration comes from the injected
    Settings.
    """

    def __init__(self, settings: Settings):
        self._api_key = settings.stripe_secret_key
        self._webhook_secret = settings.stripe_webhook_secret
        self._api_version = settings.stripe_api_version
        self._tolerance = settings.stripe_webhook_tolerance_seconds

    def _request_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"api_key": self._api_key}
        if self._api_version:
            options["stripe_version"] = self._api_version
        return options

    # =========================================================================
    # Checkout Session (Subscription Flow)
    # =========================================================================

    def create_checkout_session(
        self,
        request: CheckoutRequest,
        success_url: str,
        cancel_url: str,
    ) -> stripe.checkout.Session:
        """
        Create a Stripe Checkout Session for a subscription.

        The business context rides along as metadata on both the session and
        the resulting subscription; the webhook reconciler reads it back.

        Args:
            request: Validated checkout request
            success_url: Redirect after successful payment
            cancel_url: Redirect after cancelled payment

        Returns:
            stripe.checkout.Session with checkout URL
        """
        subscription_metadata = {
            "userId": request.user_id,
            "planId": request.plan_id,
            "planType": request.plan_type.value,
            "customerName": request.customer_name or "",
            "companyName": request.company_name or "",
        }

        try:
            session = stripe.checkout.Session.create(
                payment_method_types=["card"],
                mode="subscription",
                customer_email=request.customer_email,
                client_reference_id=request.user_id,
                line_items=[
                    {
                        "price": request.price_id,
                        "quantity": request.quantity,
                    }
                ],
                success_url=success_url,
                cancel_url=cancel_url,
                metadata={
                    **subscription_metadata,
                    "quantity": str(request.quantity),
                },
                subscription_data={
                    "metadata": subscription_metadata,
                },
                **self._request_options(),
            )

            logger.info(
                f"Created checkout session {session.id} for user {request.user_id}, "
                f"plan={request.plan_id}, quantity={request.quantity}"
            )
            return session

        except StripeError as e:
            logger.error(f"Failed to create checkout session: {e}")
            raise PaymentProviderError(
                "Error creating checkout session",
                details={"provider_message": e.user_message},
                original_error=e,
            )

    # =========================================================================
    # Subscription Queries
    # =========================================================================

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        """
        Retrieve a subscription by ID.

        Raises:
            PaymentProviderError if Stripe cannot be reached or the id is unknown
        """
        try:
            subscription = stripe.Subscription.retrieve(
                subscription_id,
                **self._request_options(),
            )
            return as_dict(subscription)
        except StripeError as e:
            logger.error(f"Failed to retrieve subscription {subscription_id}: {e}")
            raise PaymentProviderError(
                f"Could not retrieve subscription {subscription_id}",
                details={"subscription_id": subscription_id},
                original_error=e,
            )

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def verify_webhook_signature(
        self,
        payload: bytes,
        signature: str,
    ) -> Mapping[str, Any]:
        """
        Verify webhook signature and decode the event.

        The payload must be the raw request body exactly as received.

        Args:
            payload: Raw request body
            signature: Stripe-Signature header

        Returns:
            Decoded event payload

        Raises:
            SignatureError if the signature or payload is invalid
        """
        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                self._webhook_secret,
                tolerance=self._tolerance,
                api_key=self._api_key,
            )
        except ValueError as e:
            raise SignatureError(f"Invalid payload: {e}")
        except stripe.SignatureVerificationError as e:
            raise SignatureError(f"Invalid signature: {e}")

        return as_dict(event)


# =============================================================================
# Cached Instance (Dependency Injection Ready)
# =============================================================================

@lru_cache
def get_stripe_service() -> StripeService:
    """Get the Stripe service for the application settings."""
    return StripeService(get_settings())
