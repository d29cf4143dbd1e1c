"""
Stripe Webhook Handler

Receives Stripe webhook deliveries and hands them to the reconciler.

Responses:
- 400 when the signature header is missing or verification fails
- 500 when a handler fails in a way Stripe should retry
- 200 ``{"received": true}`` otherwise, including duplicates, ignored
  event types and logged persistence failures
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from app.infrastructure.exceptions import HandlerError, SignatureError
from app.infrastructure.services.webhook_reconciler import (
    WebhookReconciler,
    get_webhook_reconciler,
)


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    reconciler: WebhookReconciler = Depends(get_webhook_reconciler),
):
    """
    Handle Stripe webhook events.

    The raw body is verified exactly as received; it must not be parsed
    before verification.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    if not signature:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "No signature provided"},
        )

    try:
        event = reconciler.verify(payload, signature)
    except SignatureError as e:
        logger.error(f"Webhook signature verification failed: {e.message}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": f"Webhook Error: {e.message}"},
        )

    try:
        outcome = await reconciler.reconcile(event)
    except HandlerError as e:
        logger.error(f"Error processing webhook {event.type} ({event.event_id}): {e.message}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Webhook handler failed"},
        )

    logger.debug(f"Webhook {event.event_id} finished: {outcome.value}")
    return {"received": True}
