"""
Map a webhook's external references onto an internal user id.
"""

import logging
import uuid
from typing import Optional

from core.interfaces.repositories import SubscriptionRepository, UserRepository

logger = logging.getLogger(__name__)


class IdentityResolver:
    """
    Resolve the user a subscription event belongs to.

    The provider's user link (set from checkout metadata) is optional, so a
    miss falls back to the subscription already on file for the provider
    customer id. ``prefer_customer_id`` swaps the order.
    """

    def __init__(
        self,
        users: UserRepository,
        subscriptions: SubscriptionRepository,
        prefer_customer_id: bool = False,
    ):
        self.users = users
        self.subscriptions = subscriptions
        self.prefer_customer_id = prefer_customer_id

    async def resolve(
        self,
        external_user_id: Optional[str],
        external_customer_id: Optional[str],
    ) -> Optional[str]:
        """
        Return the internal user id, or None when neither reference resolves.
        """
        if self.prefer_customer_id:
            lookups = (
                (self._by_customer_id, external_customer_id),
                (self._by_user_id, external_user_id),
            )
        else:
            lookups = (
                (self._by_user_id, external_user_id),
                (self._by_customer_id, external_customer_id),
            )

        for lookup, reference in lookups:
            if not reference:
                continue
            user_id = await lookup(reference)
            if user_id:
                return user_id
        return None

    async def _by_user_id(self, external_user_id: str) -> Optional[str]:
        # Reject malformed ids before they reach a UUID column
        try:
            user_id = str(uuid.UUID(str(external_user_id)))
        except (ValueError, AttributeError):
            logger.info("Ignoring malformed user_id in webhook payload: %r", external_user_id)
            return None

        if await self.users.exists(user_id):
            return user_id
        return None

    async def _by_customer_id(self, external_customer_id: str) -> Optional[str]:
        existing = await self.subscriptions.get_by_external_customer_id(external_customer_id)
        return existing.user_id if existing else None
