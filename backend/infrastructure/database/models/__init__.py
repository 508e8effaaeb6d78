"""
SQLAlchemy database models.
"""

from .base import Base, TimestampMixin
from .subscription import Subscription
from .user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "User",
    "Subscription",
]
