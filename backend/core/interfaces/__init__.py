# Interfaces (Abstract Contracts)
# Infrastructure implements these interfaces
from .repositories import SubscriptionRepository, UserRepository

__all__ = [
    "SubscriptionRepository",
    "UserRepository",
]
