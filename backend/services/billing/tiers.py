"""
Product id to subscription tier mapping.
"""

from dataclasses import dataclass
from typing import Optional

from core.domain.subscription import BillingCycle, SubscriptionTier
from infrastructure.config.settings import Settings


@dataclass(frozen=True)
class ProductPlan:
    """What a provider product id buys."""

    tier: SubscriptionTier
    billing_cycle: BillingCycle


class TierResolver:
    """
    Look up the plan for a provider product id.

    Unknown ids resolve to None, never to the free tier: defaulting would
    silently downgrade a paying user whenever the provider introduces a new
    SKU or changes its id format.
    """

    def __init__(self, product_map: dict[str, ProductPlan]):
        self._product_map = {str(k): v for k, v in product_map.items() if k}

    @classmethod
    def from_settings(cls, settings: Settings) -> "TierResolver":
        """Build the map from the four configured Polar product ids."""
        entries = [
            (settings.polar_pro_monthly_product_id, SubscriptionTier.PRO, BillingCycle.MONTHLY),
            (settings.polar_pro_annual_product_id, SubscriptionTier.PRO, BillingCycle.ANNUAL),
            (settings.polar_power_monthly_product_id, SubscriptionTier.POWER, BillingCycle.MONTHLY),
            (settings.polar_power_annual_product_id, SubscriptionTier.POWER, BillingCycle.ANNUAL),
        ]
        return cls(
            {
                product_id: ProductPlan(tier=tier, billing_cycle=cycle)
                for product_id, tier, cycle in entries
                if product_id
            }
        )

    def resolve(self, product_id: Optional[str]) -> Optional[ProductPlan]:
        if not product_id:
            return None
        return self._product_map.get(str(product_id))
