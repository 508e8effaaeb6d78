"""
Structural validation of inbound billing webhooks.

Turns parsed JSON into a ``BillingEvent`` or raises ``PayloadError``.
"""

import logging
from typing import Any

from pydantic import ValidationError

from api.schemas.webhooks import SubscriptionEventData, WebhookEnvelope
from core.domain.events import (
    KNOWN_EVENT_TYPES,
    SUBSCRIPTION_EVENT_TYPES,
    BillingEvent,
    CancellationEvent,
    OtherEvent,
    SubscriptionEvent,
    WebhookEventType,
)
from services.billing.errors import PayloadError

logger = logging.getLogger(__name__)


def _error_locations(error: ValidationError) -> list[str]:
    """Field paths that failed; never the offending values."""
    return [".".join(str(part) for part in err["loc"]) or "<root>" for err in error.errors()]


def parse_event(payload: Any) -> BillingEvent:
    """
    Validate a decoded webhook body and build the matching event.

    Args:
        payload: Result of ``json.loads`` on the request body

    Returns:
        SubscriptionEvent, CancellationEvent, or OtherEvent

    Raises:
        PayloadError: If the envelope or subscription data is malformed
    """
    try:
        envelope = WebhookEnvelope.model_validate(payload)
    except ValidationError as e:
        logger.warning("Webhook payload failed schema validation: %s", _error_locations(e))
        raise PayloadError("Invalid payload structure") from e

    event_type = envelope.type

    if event_type in SUBSCRIPTION_EVENT_TYPES:
        try:
            data = SubscriptionEventData.model_validate(envelope.data)
        except ValidationError as e:
            logger.warning(
                "Subscription event %s missing required data fields: %s",
                event_type,
                _error_locations(e),
            )
            raise PayloadError("Invalid subscription data") from e
    else:
        data = None

    if event_type not in KNOWN_EVENT_TYPES:
        # Acknowledged, not rejected: the provider retries anything non-2xx
        resource_id = envelope.data.get("id")
        return OtherEvent(
            event_type=event_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            known=False,
        )

    if event_type in (WebhookEventType.SUBSCRIPTION_CREATED, WebhookEventType.SUBSCRIPTION_UPDATED):
        return SubscriptionEvent(
            event_type=event_type,
            subscription_id=data.id,
            status=data.status,
            customer_id=data.customer_id,
            product_id=data.product_id or None,
            external_user_id=data.user_id or None,
            current_period_start=data.current_period_start,
            current_period_end=data.current_period_end,
            cancel_at_period_end=bool(data.cancel_at_period_end),
        )

    if event_type == WebhookEventType.SUBSCRIPTION_CANCELED:
        return CancellationEvent(
            event_type=event_type,
            subscription_id=data.id,
            canceled_at=data.canceled_at,
        )

    resource_id = envelope.data.get("id")
    return OtherEvent(
        event_type=event_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        known=True,
    )
