"""
Subscription database model.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from core.domain.subscription import BillingCycle, SubscriptionStatus, SubscriptionTier

from .base import Base, TimestampMixin


class Subscription(Base, TimestampMixin):
    """One subscription row per user, written only by the billing webhook."""

    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    # Upserts conflict on this column
    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    # Polar identifiers
    external_subscription_id: Mapped[str] = mapped_column(String(255), nullable=False)
    external_customer_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    external_product_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Subscription state
    tier: Mapped[str] = mapped_column(
        String(20),
        default=SubscriptionTier.FREE.value,
        nullable=False,
    )
    billing_cycle: Mapped[str] = mapped_column(
        String(20),
        default=BillingCycle.MONTHLY.value,
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=SubscriptionStatus.ACTIVE.value,
        nullable=False,
    )  # active, canceled

    # Billing period
    current_period_start: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    current_period_end: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Cancellation
    cancel_at_period_end: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    canceled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_subscriptions_external_subscription_id", "external_subscription_id"),
        Index("ix_subscriptions_external_customer_id", "external_customer_id"),
    )

    def __repr__(self) -> str:
        return f"<Subscription(user_id={self.user_id}, tier={self.tier}, status={self.status})>"
