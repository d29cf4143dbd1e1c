"""
Payments Infrastructure Module

Stripe checkout, subscription lookup and webhook verification.
"""

from app.infrastructure.payments.stripe_service import StripeService, get_stripe_service

__all__ = ["StripeService", "get_stripe_service"]
