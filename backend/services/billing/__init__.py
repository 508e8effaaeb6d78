"""
Billing webhook processing: validation, identity and tier resolution,
and subscription reconciliation.
"""

from .errors import (
    AuthenticationError,
    ConfigurationError,
    PayloadError,
    PayloadTooLarge,
    PersistenceError,
    RateLimited,
    WebhookError,
)
from .identity import IdentityResolver
from .reconciler import ReconcileOutcome, SubscriptionReconciler
from .tiers import ProductPlan, TierResolver
from .validation import parse_event

__all__ = [
    "WebhookError",
    "ConfigurationError",
    "AuthenticationError",
    "PayloadError",
    "PayloadTooLarge",
    "RateLimited",
    "PersistenceError",
    "IdentityResolver",
    "TierResolver",
    "ProductPlan",
    "SubscriptionReconciler",
    "ReconcileOutcome",
    "parse_event",
]
