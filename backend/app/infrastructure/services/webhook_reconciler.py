"""
Stripe Webhook Reconciler

Applies verified Stripe events to the subscriptions and team tables.

Delivery is at-least-once and unordered, so every handler is an upsert or a
keyed update: replaying an event, or receiving ``updated`` before the
checkout completion, converges on the state Stripe last reported.

Failure policy:
- A database failure inside a handler is logged with the event and
  subscription ids and swallowed; Stripe still gets a 200.
- Anything else (e.g. Stripe unreachable while fetching the subscription)
  raises HandlerError so Stripe's retry schedule re-delivers the event.
"""

import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncGenerator, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from typing_extensions import assert_never

from app.domain.events import (
    CheckoutMetadata,
    CheckoutSessionCompleted,
    InvoicePaymentFailed,
    InvoicePaymentSucceeded,
    SubscriptionCreated,
    SubscriptionDeleted,
    SubscriptionUpdated,
    UnknownEvent,
    WebhookEvent,
    parse_event,
    subscription_period,
)
from app.domain.subscription import SubscriptionStatus, TeamRole
from app.infrastructure.db.database import get_db_manager
from app.infrastructure.db.repositories import (
    SubscriptionRepository,
    TeamMembershipRepository,
    WebhookEventRepository,
)
from app.infrastructure.exceptions import (
    HandlerError,
    PersistenceError,
    SignatureError,
)
from app.infrastructure.payments.stripe_service import StripeService, get_stripe_service


logger = logging.getLogger(__name__)


class ReconcileOutcome(str, Enum):
    PROCESSED = "processed"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    FAILED_PERSISTENCE = "failed_persistence"


def parse_status(value: Optional[str]) -> Optional[SubscriptionStatus]:
    """Map a Stripe status string; None when absent or unrecognized."""
    if value is None:
        return None
    try:
        return SubscriptionStatus(value)
    except ValueError:
        logger.warning(f"Ignoring unrecognized Stripe subscription status {value!r}")
        return None


class WebhookReconciler:
    """
    Verifies and applies Stripe webhook events.

    Each handler runs in its own transaction opened from ``session_factory``.
    """

    def __init__(
        self,
        stripe_service: StripeService,
        session_factory: async_sessionmaker[AsyncSession],
    ):
        self._stripe = stripe_service
        self._session_factory = session_factory

    # =========================================================================
    # Entry points
    # =========================================================================

    def verify(self, payload: bytes, signature: str) -> WebhookEvent:
        """
        Verify the raw body against the signature header and parse it.

        Raises:
            SignatureError: bad signature or a payload that is not an event
        """
        raw_event = self._stripe.verify_webhook_signature(payload, signature)
        try:
            return parse_event(raw_event)
        except (KeyError, TypeError, AttributeError, PydanticValidationError) as e:
            raise SignatureError(f"Invalid payload: malformed event ({e})")

    async def reconcile(self, event: WebhookEvent) -> ReconcileOutcome:
        """
        Apply one event.

        Raises:
            HandlerError: the event could not be handled and should be retried
        """
        try:
            if event.event_id and await self._is_processed(event):
                logger.info(f"Event {event.event_id} already processed, skipping")
                return ReconcileOutcome.DUPLICATE

            logger.info(f"Processing webhook event: {event.type} ({event.event_id})")
            outcome = await self._dispatch(event)

            if outcome == ReconcileOutcome.PROCESSED and event.event_id:
                async with self._transaction(event) as session:
                    await WebhookEventRepository(session).mark_processed(
                        event.event_id, event.type
                    )
            return outcome

        except PersistenceError as e:
            logger.error(
                f"Persistence failure while handling {event.type} "
                f"(event={event.event_id}, subscription={e.details.get('subscription_id')}): "
                f"{e.original_error or e}"
            )
            return ReconcileOutcome.FAILED_PERSISTENCE
        except Exception as e:
            logger.exception(f"Webhook handler error for {event.type} ({event.event_id})")
            raise HandlerError(
                "Webhook handler failed",
                event_id=event.event_id,
                event_type=event.type,
                original_error=e,
            ) from e

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def _dispatch(self, event: WebhookEvent) -> ReconcileOutcome:
        if isinstance(event, CheckoutSessionCompleted):
            return await self._handle_checkout_completed(event)
        elif isinstance(event, SubscriptionCreated):
            return await self._apply_subscription_event(
                event, SubscriptionStatus.ACTIVE, include_period=True
            )
        elif isinstance(event, SubscriptionUpdated):
            return await self._apply_subscription_event(
                event, parse_status(event.status), include_period=True
            )
        elif isinstance(event, SubscriptionDeleted):
            return await self._apply_subscription_event(
                event, SubscriptionStatus.CANCELED, include_period=False
            )
        elif isinstance(event, InvoicePaymentSucceeded):
            return await self._apply_invoice_event(event, SubscriptionStatus.ACTIVE)
        elif isinstance(event, InvoicePaymentFailed):
            return await self._apply_invoice_event(event, SubscriptionStatus.PAST_DUE)
        elif isinstance(event, UnknownEvent):
            logger.info(f"Unhandled event type {event.type}")
            return ReconcileOutcome.IGNORED
        else:
            assert_never(event)

    # =========================================================================
    # Event Handlers
    # =========================================================================

    async def _handle_checkout_completed(
        self,
        event: CheckoutSessionCompleted,
    ) -> ReconcileOutcome:
        """
        Create the subscription row (and the admin seat for team plans).

        A completed checkout is always stored as active, whatever status the
        provider reports at that moment; later ``customer.subscription.*``
        events carry any subsequent status.

        Both writes share one transaction so a subscription never exists
        without its admin membership.
        """
        if not event.user_id or not event.subscription_id:
            logger.error(
                f"Checkout session {event.session_id} is missing userId or subscription id"
            )
            return ReconcileOutcome.IGNORED

        stripe_subscription = self._stripe.retrieve_subscription(event.subscription_id)
        metadata = event.metadata
        if not metadata.plan_id:
            metadata = CheckoutMetadata.from_stripe(stripe_subscription.get("metadata"))

        period_start, period_end = subscription_period(stripe_subscription)

        async with self._transaction(event, event.subscription_id) as session:
            subscription = await SubscriptionRepository(session).upsert(
                user_id=event.user_id,
                plan_id=metadata.plan_id,
                stripe_subscription_id=event.subscription_id,
                stripe_customer_id=event.customer_id or _customer_id(stripe_subscription),
                status=SubscriptionStatus.ACTIVE,
                current_period_start=period_start,
                current_period_end=period_end,
            )
            if metadata.is_team:
                await TeamMembershipRepository(session).upsert(
                    subscription.id, event.user_id, TeamRole.ADMIN
                )

        logger.info(f"Subscription created successfully for user: {event.user_id}")
        return ReconcileOutcome.PROCESSED

    async def _apply_subscription_event(
        self,
        event: SubscriptionCreated | SubscriptionUpdated | SubscriptionDeleted,
        status: Optional[SubscriptionStatus],
        include_period: bool,
    ) -> ReconcileOutcome:
        """
        Update the row for a ``customer.subscription.*`` event.

        If the row does not exist yet (the event beat checkout completion),
        it is created from the metadata stamped on the subscription at
        checkout.
        """
        fields: dict[str, Any] = {}
        if status is not None:
            fields["status"] = status
        if include_period:
            if event.current_period_start is not None:
                fields["current_period_start"] = event.current_period_start
            if event.current_period_end is not None:
                fields["current_period_end"] = event.current_period_end

        async with self._transaction(event, event.subscription_id) as session:
            repo = SubscriptionRepository(session)
            if fields and await repo.update_by_stripe_subscription_id(
                event.subscription_id, **fields
            ):
                logger.info(f"Subscription {event.subscription_id} updated from {event.type}")
                return ReconcileOutcome.PROCESSED

            existing = await repo.get_by_stripe_subscription_id(event.subscription_id)
            if existing is not None:
                return ReconcileOutcome.PROCESSED

            metadata = event.metadata
            if not metadata.user_id or not metadata.plan_id:
                logger.warning(
                    f"No local subscription for {event.subscription_id} and no checkout "
                    f"metadata to recover it from; ignoring {event.type}"
                )
                return ReconcileOutcome.IGNORED

            subscription = await repo.upsert(
                user_id=metadata.user_id,
                plan_id=metadata.plan_id,
                stripe_subscription_id=event.subscription_id,
                stripe_customer_id=event.customer_id,
                status=status or SubscriptionStatus.INACTIVE,
                current_period_start=event.current_period_start,
                current_period_end=event.current_period_end,
            )
            if metadata.is_team:
                await TeamMembershipRepository(session).upsert(
                    subscription.id, metadata.user_id, TeamRole.ADMIN
                )

        logger.info(
            f"Recovered subscription {event.subscription_id} for user {metadata.user_id} "
            f"from {event.type} metadata"
        )
        return ReconcileOutcome.PROCESSED

    async def _apply_invoice_event(
        self,
        event: InvoicePaymentSucceeded | InvoicePaymentFailed,
        status: SubscriptionStatus,
    ) -> ReconcileOutcome:
        if not event.subscription_id:
            logger.info(f"Invoice {event.invoice_id} is not tied to a subscription; ignoring")
            return ReconcileOutcome.IGNORED

        logger.info(f"{event.type} for subscription: {event.subscription_id}")

        async with self._transaction(event, event.subscription_id) as session:
            matched = await SubscriptionRepository(session).update_by_stripe_subscription_id(
                event.subscription_id, status=status
            )

        if not matched:
            logger.warning(
                f"No local subscription for {event.subscription_id}; "
                f"{event.type} left nothing to update"
            )
            return ReconcileOutcome.IGNORED
        return ReconcileOutcome.PROCESSED

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _is_processed(self, event: WebhookEvent) -> bool:
        async with self._transaction(event) as session:
            return await WebhookEventRepository(session).is_processed(event.event_id)

    @asynccontextmanager
    async def _transaction(
        self,
        event: WebhookEvent,
        subscription_id: Optional[str] = None,
    ) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on success and turns DB errors into PersistenceError."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                error = PersistenceError(
                    f"Database error while handling {event.type}",
                    operation=event.type,
                    table="subscriptions",
                    original_error=e,
                )
                error.details["event_id"] = event.event_id
                if subscription_id:
                    error.details["subscription_id"] = subscription_id
                raise error from e


def _customer_id(stripe_subscription: Mapping[str, Any]) -> Optional[str]:
    customer = stripe_subscription.get("customer")
    if isinstance(customer, Mapping):
        return customer.get("id")
    return customer


def get_webhook_reconciler() -> WebhookReconciler:
    """Dependency provider wiring the reconciler to the application database."""
    return WebhookReconciler(get_stripe_service(), get_db_manager().session_factory)
