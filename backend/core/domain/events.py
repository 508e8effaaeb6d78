"""Validated billing webhook events.

Raw provider JSON is turned into one of these by
``services.billing.validation.parse_event``; nothing past that point handles
untyped payloads.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Optional, Union


class WebhookEventType(StrEnum):
    """Polar webhook event types."""

    SUBSCRIPTION_CREATED = "subscription.created"
    SUBSCRIPTION_UPDATED = "subscription.updated"
    SUBSCRIPTION_CANCELED = "subscription.canceled"
    SUBSCRIPTION_REVOKED = "subscription.revoked"
    ORDER_CREATED = "order.created"


# Event types whose data must carry a subscription id and status
SUBSCRIPTION_EVENT_TYPES = frozenset(
    {
        WebhookEventType.SUBSCRIPTION_CREATED,
        WebhookEventType.SUBSCRIPTION_UPDATED,
        WebhookEventType.SUBSCRIPTION_CANCELED,
        WebhookEventType.SUBSCRIPTION_REVOKED,
    }
)

# Event types this service acts on or deliberately acknowledges
KNOWN_EVENT_TYPES = frozenset(
    {
        WebhookEventType.SUBSCRIPTION_CREATED,
        WebhookEventType.SUBSCRIPTION_UPDATED,
        WebhookEventType.SUBSCRIPTION_CANCELED,
        WebhookEventType.ORDER_CREATED,
    }
)


@dataclass(frozen=True)
class SubscriptionEvent:
    """subscription.created / subscription.updated."""

    event_type: str
    subscription_id: str
    status: str
    customer_id: Optional[str] = None
    product_id: Optional[str] = None
    external_user_id: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False


@dataclass(frozen=True)
class CancellationEvent:
    """subscription.canceled; may omit any user linkage."""

    event_type: str
    subscription_id: str
    canceled_at: Optional[datetime] = None


@dataclass(frozen=True)
class OtherEvent:
    """Well-formed event that never mutates subscription state."""

    event_type: str
    resource_id: Optional[str] = None
    known: bool = False


BillingEvent = Union[SubscriptionEvent, CancellationEvent, OtherEvent]
