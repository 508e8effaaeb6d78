"""Repository interfaces for data access."""

from abc import ABC, abstractmethod
from datetime import datetime

from ..domain.subscription import Subscription, SubscriptionStatus


class SubscriptionRepository(ABC):
    """Abstract store of subscription records, keyed by user id."""

    @abstractmethod
    async def get_by_user(self, user_id: str, for_update: bool = False) -> Subscription | None:
        """Get the subscription owned by a user.

        ``for_update`` asks the store to lock the row until the next write
        commits, where the backend supports it.
        """
        ...

    @abstractmethod
    async def get_by_external_customer_id(self, customer_id: str) -> Subscription | None:
        """Get the subscription on file for a provider customer id."""
        ...

    @abstractmethod
    async def upsert(self, subscription: Subscription) -> None:
        """Atomically insert or replace the record for ``subscription.user_id``."""
        ...

    @abstractmethod
    async def update_status_by_external_subscription_id(
        self,
        subscription_id: str,
        status: SubscriptionStatus,
        canceled_at: datetime | None,
        keep_existing_canceled_at: bool = False,
    ) -> int:
        """Set status/canceled_at on records with this provider subscription id.

        With ``keep_existing_canceled_at`` a record that already has a
        cancellation time keeps it and ``canceled_at`` only fills an empty one.

        Returns the number of records matched.
        """
        ...


class UserRepository(ABC):
    """Read-only view of user identity records owned by the product."""

    @abstractmethod
    async def exists(self, user_id: str) -> bool:
        """Check whether a user with this id exists."""
        ...
