# Domain Entities
# Pure business objects with no external dependencies
from .events import (
    KNOWN_EVENT_TYPES,
    SUBSCRIPTION_EVENT_TYPES,
    BillingEvent,
    CancellationEvent,
    OtherEvent,
    SubscriptionEvent,
    WebhookEventType,
)
from .subscription import BillingCycle, Subscription, SubscriptionStatus, SubscriptionTier

__all__ = [
    "Subscription",
    "SubscriptionTier",
    "SubscriptionStatus",
    "BillingCycle",
    "BillingEvent",
    "SubscriptionEvent",
    "CancellationEvent",
    "OtherEvent",
    "WebhookEventType",
    "KNOWN_EVENT_TYPES",
    "SUBSCRIPTION_EVENT_TYPES",
]
