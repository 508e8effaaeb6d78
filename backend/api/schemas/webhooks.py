"""
Billing webhook request/response schemas.

Inbound models allow extra fields: the provider adds fields without a
version bump and those must not cause rejections.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WebhookEnvelope(BaseModel):
    """Minimal shape every Polar webhook must have."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(..., description="Event type, e.g. subscription.updated")
    data: dict[str, Any] = Field(..., description="Provider-defined event payload")


class SubscriptionEventData(BaseModel):
    """Data object of subscription.* events."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., description="Polar subscription ID")
    status: str = Field(..., description="Polar subscription status")
    customer_id: str | None = Field(None, description="Polar customer ID")
    product_id: str | None = Field(None, description="Polar product ID")
    user_id: str | None = Field(None, description="Internal user ID linked at checkout")
    current_period_start: datetime | None = Field(None, description="Start of the paid period")
    current_period_end: datetime | None = Field(None, description="End of the paid period")
    cancel_at_period_end: bool | None = Field(
        None, description="Whether the subscription ends with the current period"
    )
    canceled_at: datetime | None = Field(None, description="When the subscription was canceled")


class WebhookReceivedResponse(BaseModel):
    """Acknowledgement returned for every accepted delivery."""

    received: bool = Field(True, description="Delivery was accepted")
