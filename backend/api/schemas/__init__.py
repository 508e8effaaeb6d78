"""
API request and response schemas.
"""

from .webhooks import SubscriptionEventData, WebhookEnvelope, WebhookReceivedResponse

__all__ = [
    "WebhookEnvelope",
    "SubscriptionEventData",
    "WebhookReceivedResponse",
]
