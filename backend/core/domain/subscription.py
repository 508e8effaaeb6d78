"""Subscription domain entities."""
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class SubscriptionTier(str, Enum):
    """Available subscription tiers, totally ordered free < pro < power."""
    FREE = "free"
    PRO = "pro"
    POWER = "power"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]

    def outranks(self, other: "SubscriptionTier") -> bool:
        """True when this tier is strictly higher than *other*."""
        return self.rank > other.rank


_TIER_RANK = {
    SubscriptionTier.FREE: 0,
    SubscriptionTier.PRO: 1,
    SubscriptionTier.POWER: 2,
}


class BillingCycle(str, Enum):
    """Billing interval options."""
    MONTHLY = "monthly"
    ANNUAL = "annual"


class SubscriptionStatus(str, Enum):
    """Stored subscription status."""
    ACTIVE = "active"
    CANCELED = "canceled"

    @classmethod
    def from_provider(cls, value: Optional[str]) -> "SubscriptionStatus":
        """Collapse the provider's status vocabulary onto active/canceled."""
        return cls.ACTIVE if value == "active" else cls.CANCELED


@dataclass
class Subscription:
    """Authoritative subscription record, one per user."""

    user_id: str
    external_subscription_id: str
    external_customer_id: Optional[str] = None
    external_product_id: Optional[str] = None

    tier: SubscriptionTier = SubscriptionTier.FREE
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE

    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[datetime] = None

    def __post_init__(self):
        if isinstance(self.tier, str):
            self.tier = SubscriptionTier(self.tier)
        if isinstance(self.billing_cycle, str):
            self.billing_cycle = BillingCycle(self.billing_cycle)
        if isinstance(self.status, str):
            self.status = SubscriptionStatus(self.status)

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE

    def effective_tier(self, now: Optional[datetime] = None) -> SubscriptionTier:
        """Tier that feature gates should honour at *now*.

        A canceled subscription keeps its tier until the paid period runs out.
        """
        if self.is_active:
            return self.tier
        if self.current_period_end is None:
            return SubscriptionTier.FREE
        now = now or datetime.now(timezone.utc)
        period_end = self.current_period_end
        if period_end.tzinfo is None:
            period_end = period_end.replace(tzinfo=timezone.utc)
        return self.tier if period_end > now else SubscriptionTier.FREE
