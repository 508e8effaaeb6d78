"""
Subscription reconciliation.

Decides whether a validated billing event changes the stored subscription
record and applies that change. Conditions that retrying can never fix
(unknown user, unknown product, stale downgrade) come back as outcomes so the
caller can acknowledge them; only store failures raise.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from enum import StrEnum

from core.domain.events import BillingEvent, CancellationEvent, OtherEvent, SubscriptionEvent
from core.domain.subscription import Subscription, SubscriptionStatus
from core.interfaces.repositories import SubscriptionRepository
from services.billing.identity import IdentityResolver
from services.billing.tiers import TierResolver

logger = logging.getLogger(__name__)


class ReconcileOutcome(StrEnum):
    """What reconciling one event did."""

    APPLIED = "applied"
    CANCELED = "canceled"
    NOTHING_TO_CANCEL = "nothing_to_cancel"
    IDENTITY_UNRESOLVED = "identity_unresolved"
    TIER_UNRESOLVED = "tier_unresolved"
    DOWNGRADE_BLOCKED = "downgrade_blocked"
    IGNORED = "ignored"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SubscriptionReconciler:
    """Applies billing events to the subscription store."""

    def __init__(
        self,
        subscriptions: SubscriptionRepository,
        identity: IdentityResolver,
        tiers: TierResolver,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.subscriptions = subscriptions
        self.identity = identity
        self.tiers = tiers
        self._clock = clock

    async def reconcile(self, event: BillingEvent) -> ReconcileOutcome:
        """
        Apply *event*.

        Raises:
            PersistenceError: If the store fails; nothing is committed
        """
        if isinstance(event, SubscriptionEvent):
            return await self._apply_subscription(event)
        if isinstance(event, CancellationEvent):
            return await self._apply_cancellation(event)
        return self._acknowledge(event)

    async def _apply_subscription(self, event: SubscriptionEvent) -> ReconcileOutcome:
        user_id = await self.identity.resolve(event.external_user_id, event.customer_id)
        if user_id is None:
            # Provider may be ahead of user signup
            logger.info(
                "No user found for subscription %s",
                event.subscription_id,
                extra={"event_type": event.event_type, "subscription_id": event.subscription_id},
            )
            return ReconcileOutcome.IDENTITY_UNRESOLVED

        plan = self.tiers.resolve(event.product_id)
        if plan is None:
            logger.error(
                "Unrecognized product_id %r on subscription %s for user %s; tier left unchanged. "
                "Check the Polar product id settings.",
                event.product_id,
                event.subscription_id,
                user_id,
                extra={"user_id": user_id, "subscription_id": event.subscription_id},
            )
            return ReconcileOutcome.TIER_UNRESOLVED

        existing = await self.subscriptions.get_by_user(user_id, for_update=True)
        if existing is not None and existing.is_active and existing.tier.outranks(plan.tier):
            logger.warning(
                "Skipping downgrade for user %s: stored active tier %s outranks incoming %s "
                "(subscription %s, event %s); possible stale or out-of-order delivery",
                user_id,
                existing.tier.value,
                plan.tier.value,
                event.subscription_id,
                event.event_type,
                extra={"user_id": user_id, "subscription_id": event.subscription_id},
            )
            return ReconcileOutcome.DOWNGRADE_BLOCKED

        record = Subscription(
            user_id=user_id,
            external_subscription_id=event.subscription_id,
            external_customer_id=event.customer_id,
            external_product_id=event.product_id,
            tier=plan.tier,
            billing_cycle=plan.billing_cycle,
            status=SubscriptionStatus.from_provider(event.status),
            current_period_start=event.current_period_start,
            current_period_end=event.current_period_end,
            cancel_at_period_end=event.cancel_at_period_end,
        )
        await self.subscriptions.upsert(record)

        logger.info(
            "Updated subscription for user %s: tier=%s, cycle=%s, status=%s",
            user_id,
            record.tier.value,
            record.billing_cycle.value,
            record.status.value,
            extra={"user_id": user_id, "subscription_id": event.subscription_id},
        )
        return ReconcileOutcome.APPLIED

    async def _apply_cancellation(self, event: CancellationEvent) -> ReconcileOutcome:
        # Without a provider timestamp, redeliveries keep the first one recorded
        matched = await self.subscriptions.update_status_by_external_subscription_id(
            event.subscription_id,
            SubscriptionStatus.CANCELED,
            event.canceled_at or self._clock(),
            keep_existing_canceled_at=event.canceled_at is None,
        )
        if not matched:
            logger.info(
                "No subscription on file for canceled subscription %s",
                event.subscription_id,
                extra={"subscription_id": event.subscription_id},
            )
            return ReconcileOutcome.NOTHING_TO_CANCEL

        logger.info(
            "Canceled subscription %s",
            event.subscription_id,
            extra={"subscription_id": event.subscription_id},
        )
        return ReconcileOutcome.CANCELED

    def _acknowledge(self, event: OtherEvent) -> ReconcileOutcome:
        if event.known:
            logger.info("%s received: %s", event.event_type, event.resource_id)
        else:
            logger.info("Received unrecognized Polar event type: %s", event.event_type)
        return ReconcileOutcome.IGNORED
