"""
Checkout API Routes

Starts a Stripe Checkout session for a plan purchase. The subscription is
recorded later by the Stripe webhook.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request

from app.api.dependencies import get_optional_user_id
from app.domain.subscription import CheckoutRequest, CheckoutResponse
from app.infrastructure.services.checkout_service import (
    CheckoutService,
    get_checkout_service,
)


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/checkout/sessions", response_model=CheckoutResponse)
async def create_checkout_session(
    body: CheckoutRequest,
    request: Request,
    user_id: Optional[str] = Depends(get_optional_user_id),
    service: CheckoutService = Depends(get_checkout_service),
):
    """
    Create a Stripe Checkout session.

    Redirect URLs are built from the request Origin, falling back to the
    configured frontend URL.
    """
    return service.create_session(
        body,
        origin=request.headers.get("origin"),
        authenticated_user_id=user_id,
    )
