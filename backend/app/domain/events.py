"""
Stripe Webhook Event Variants

Closed set of the webhook events the reconciler understands, parsed from the
verified JSON payload. Anything else becomes ``UnknownEvent`` so dispatch can
be checked exhaustively instead of relying on a default branch.
"""

from datetime import datetime, timezone
from typing import Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field

from app.domain.subscription import PlanType


class CheckoutMetadata(BaseModel):
    """Business context attached to the session and subscription at checkout."""
    user_id: Optional[str] = None
    plan_id: Optional[str] = None
    plan_type: Optional[PlanType] = None
    customer_name: Optional[str] = None
    company_name: Optional[str] = None

    @classmethod
    def from_stripe(cls, metadata: Optional[Mapping[str, Any]]) -> "CheckoutMetadata":
        metadata = metadata or {}
        plan_type = metadata.get("planType")
        return cls(
            user_id=metadata.get("userId") or None,
            plan_id=metadata.get("planId") or None,
            plan_type=plan_type if plan_type in PlanType._value2member_map_ else None,
            customer_name=metadata.get("customerName") or None,
            company_name=metadata.get("companyName") or None,
        )

    @property
    def is_team(self) -> bool:
        return self.plan_type == PlanType.TEAM


class _Event(BaseModel):
    event_id: str
    type: str


class CheckoutSessionCompleted(_Event):
    type: Literal["checkout.session.completed"] = "checkout.session.completed"
    session_id: Optional[str] = None
    user_id: Optional[str] = None
    customer_id: Optional[str] = None
    subscription_id: Optional[str] = None
    metadata: CheckoutMetadata = Field(default_factory=CheckoutMetadata)


class _SubscriptionEvent(_Event):
    subscription_id: str
    customer_id: Optional[str] = None
    status: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    metadata: CheckoutMetadata = Field(default_factory=CheckoutMetadata)


class SubscriptionCreated(_SubscriptionEvent):
    type: Literal["customer.subscription.created"] = "customer.subscription.created"


class SubscriptionUpdated(_SubscriptionEvent):
    type: Literal["customer.subscription.updated"] = "customer.subscription.updated"


class SubscriptionDeleted(_SubscriptionEvent):
    type: Literal["customer.subscription.deleted"] = "customer.subscription.deleted"


class _InvoiceEvent(_Event):
    invoice_id: Optional[str] = None
    subscription_id: Optional[str] = None
    customer_id: Optional[str] = None


class InvoicePaymentSucceeded(_InvoiceEvent):
    type: Literal["invoice.payment_succeeded"] = "invoice.payment_succeeded"


class InvoicePaymentFailed(_InvoiceEvent):
    type: Literal["invoice.payment_failed"] = "invoice.payment_failed"


class UnknownEvent(_Event):
    """Any event type the reconciler does not act on."""
    pass


WebhookEvent = Union[
    CheckoutSessionCompleted,
    SubscriptionCreated,
    SubscriptionUpdated,
    SubscriptionDeleted,
    InvoicePaymentSucceeded,
    InvoicePaymentFailed,
    UnknownEvent,
]


# =============================================================================
# Payload helpers
# =============================================================================

def from_timestamp(value: Optional[int]) -> Optional[datetime]:
    """Stripe timestamps are Unix seconds."""
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def subscription_period(subscription: Mapping[str, Any]) -> tuple[Optional[datetime], Optional[datetime]]:
    """
    Billing period of a Stripe subscription object.

    Newer API versions moved ``current_period_*`` from the subscription onto
    its items, so fall back to the first item.
    """
    start = subscription.get("current_period_start")
    end = subscription.get("current_period_end")

    if start is None or end is None:
        items = (subscription.get("items") or {}).get("data") or []
        if items:
            start = start if start is not None else items[0].get("current_period_start")
            end = end if end is not None else items[0].get("current_period_end")

    return from_timestamp(start), from_timestamp(end)


def _id_of(value: Any) -> Optional[str]:
    """Expandable fields arrive either as an id string or an object."""
    if isinstance(value, Mapping):
        return value.get("id")
    return value


def invoice_subscription_id(invoice: Mapping[str, Any]) -> Optional[str]:
    subscription_id = _id_of(invoice.get("subscription"))
    if subscription_id:
        return subscription_id

    parent = invoice.get("parent") or {}
    details = parent.get("subscription_details") or {}
    return _id_of(details.get("subscription"))


def _subscription_fields(obj: Mapping[str, Any]) -> dict[str, Any]:
    start, end = subscription_period(obj)
    return {
        "subscription_id": obj["id"],
        "customer_id": _id_of(obj.get("customer")),
        "status": obj.get("status"),
        "current_period_start": start,
        "current_period_end": end,
        "metadata": CheckoutMetadata.from_stripe(obj.get("metadata")),
    }


def _invoice_fields(obj: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "invoice_id": obj.get("id"),
        "subscription_id": invoice_subscription_id(obj),
        "customer_id": _id_of(obj.get("customer")),
    }


def parse_event(payload: Mapping[str, Any]) -> WebhookEvent:
    """Turn a verified Stripe event payload into its variant."""
    event_id = payload.get("id") or ""
    event_type = payload.get("type") or ""
    obj = (payload.get("data") or {}).get("object") or {}

    if event_type == "checkout.session.completed":
        return CheckoutSessionCompleted(
            event_id=event_id,
            session_id=obj.get("id"),
            user_id=obj.get("client_reference_id"),
            customer_id=_id_of(obj.get("customer")),
            subscription_id=_id_of(obj.get("subscription")),
            metadata=CheckoutMetadata.from_stripe(obj.get("metadata")),
        )
    if event_type == "customer.subscription.created":
        return SubscriptionCreated(event_id=event_id, **_subscription_fields(obj))
    if event_type == "customer.subscription.updated":
        return SubscriptionUpdated(event_id=event_id, **_subscription_fields(obj))
    if event_type == "customer.subscription.deleted":
        return SubscriptionDeleted(event_id=event_id, **_subscription_fields(obj))
    if event_type == "invoice.payment_succeeded":
        return InvoicePaymentSucceeded(event_id=event_id, **_invoice_fields(obj))
    if event_type == "invoice.payment_failed":
        return InvoicePaymentFailed(event_id=event_id, **_invoice_fields(obj))

    return UnknownEvent(event_id=event_id, type=event_type)
