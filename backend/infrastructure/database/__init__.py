from .connection import (
    Base,
    async_session_maker,
    close_db,
    engine,
    get_db,
    init_db,
)
from .repositories import SqlAlchemySubscriptionRepository, SqlAlchemyUserRepository

__all__ = [
    "Base",
    "engine",
    "async_session_maker",
    "get_db",
    "init_db",
    "close_db",
    "SqlAlchemySubscriptionRepository",
    "SqlAlchemyUserRepository",
]
