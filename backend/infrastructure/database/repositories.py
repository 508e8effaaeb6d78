"""
SQLAlchemy implementations of the repository interfaces.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.subscription import Subscription, SubscriptionStatus
from core.interfaces.repositories import SubscriptionRepository, UserRepository
from services.billing.errors import PersistenceError

from .models import Subscription as SubscriptionModel
from .models import User as UserModel

logger = logging.getLogger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

# Columns an upsert overwrites on conflict. canceled_at is left out so a
# replayed subscription event never erases a recorded cancellation; it is
# only cleared when the incoming record is active again.
_UPSERT_UPDATE_COLUMNS = (
    "external_subscription_id",
    "external_customer_id",
    "external_product_id",
    "tier",
    "billing_cycle",
    "status",
    "current_period_start",
    "current_period_end",
    "cancel_at_period_end",
)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything stored here is UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_domain(row: SubscriptionModel) -> Subscription:
    return Subscription(
        user_id=row.user_id,
        external_subscription_id=row.external_subscription_id,
        external_customer_id=row.external_customer_id,
        external_product_id=row.external_product_id,
        tier=row.tier,
        billing_cycle=row.billing_cycle,
        status=row.status,
        current_period_start=_as_utc(row.current_period_start),
        current_period_end=_as_utc(row.current_period_end),
        cancel_at_period_end=row.cancel_at_period_end,
        canceled_at=_as_utc(row.canceled_at),
    )


class SqlAlchemySubscriptionRepository(SubscriptionRepository):
    """Subscription store backed by the ``subscriptions`` table.

    Writes commit the session they run on, which also releases any row
    lock taken by ``get_by_user(for_update=True)``. On a database error the
    session is rolled back and :class:`PersistenceError` is raised.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_user(self, user_id: str, for_update: bool = False) -> Subscription | None:
        stmt = (
            select(SubscriptionModel)
            .where(SubscriptionModel.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            # Ignored by SQLite, which serialises writers anyway
            stmt = stmt.with_for_update()
        row = await self._scalar(stmt)
        return _to_domain(row) if row is not None else None

    async def get_by_external_customer_id(self, customer_id: str) -> Subscription | None:
        stmt = (
            select(SubscriptionModel)
            .where(SubscriptionModel.external_customer_id == customer_id)
            .limit(1)
            .execution_options(populate_existing=True)
        )
        row = await self._scalar(stmt)
        return _to_domain(row) if row is not None else None

    async def upsert(self, subscription: Subscription) -> None:
        insert = self._insert_for_dialect()
        values = {
            "user_id": subscription.user_id,
            "external_subscription_id": subscription.external_subscription_id,
            "external_customer_id": subscription.external_customer_id,
            "external_product_id": subscription.external_product_id,
            "tier": subscription.tier.value,
            "billing_cycle": subscription.billing_cycle.value,
            "status": subscription.status.value,
            "current_period_start": subscription.current_period_start,
            "current_period_end": subscription.current_period_end,
            "cancel_at_period_end": subscription.cancel_at_period_end,
            "canceled_at": subscription.canceled_at,
        }
        stmt = insert(SubscriptionModel).values(**values)
        update_set = {column: stmt.excluded[column] for column in _UPSERT_UPDATE_COLUMNS}
        if subscription.status is SubscriptionStatus.ACTIVE:
            update_set["canceled_at"] = stmt.excluded.canceled_at
        update_set["updated_at"] = func.now()
        stmt = stmt.on_conflict_do_update(index_elements=["user_id"], set_=update_set)

        try:
            await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                "Subscription upsert failed: %s",
                type(e).__name__,
                extra={"user_id": subscription.user_id},
            )
            raise PersistenceError("Subscription upsert failed") from e

    async def update_status_by_external_subscription_id(
        self,
        subscription_id: str,
        status: SubscriptionStatus,
        canceled_at: datetime | None,
        keep_existing_canceled_at: bool = False,
    ) -> int:
        canceled_value = canceled_at
        if keep_existing_canceled_at:
            canceled_value = func.coalesce(SubscriptionModel.canceled_at, canceled_at)
        stmt = (
            update(SubscriptionModel)
            .where(SubscriptionModel.external_subscription_id == subscription_id)
            .values(status=status.value, canceled_at=canceled_value, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                "Subscription status update failed: %s",
                type(e).__name__,
                extra={"subscription_id": subscription_id},
            )
            raise PersistenceError("Subscription status update failed") from e
        return result.rowcount

    def _insert_for_dialect(self):
        dialect = self.session.get_bind().dialect.name
        try:
            return _INSERT_BY_DIALECT[dialect]
        except KeyError:
            raise PersistenceError(f"Upsert not supported on dialect {dialect!r}") from None

    async def _scalar(self, stmt) -> Optional[SubscriptionModel]:
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Subscription lookup failed: %s", type(e).__name__)
            raise PersistenceError("Subscription lookup failed") from e
        return result.scalar_one_or_none()


class SqlAlchemyUserRepository(UserRepository):
    """Existence checks against the ``users`` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def exists(self, user_id: str) -> bool:
        stmt = select(UserModel.id).where(UserModel.id == user_id)
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("User lookup failed: %s", type(e).__name__)
            raise PersistenceError("User lookup failed") from e
        return result.scalar_one_or_none() is not None
