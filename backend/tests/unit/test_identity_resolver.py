"""
Unit tests for the identity resolver.
"""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from core.domain.subscription import Subscription
from services.billing import IdentityResolver

KNOWN_USER = str(uuid4())
CUSTOMER_USER = str(uuid4())


@pytest.fixture
def users():
    repo = AsyncMock()
    repo.exists.side_effect = lambda user_id: user_id in {KNOWN_USER, CUSTOMER_USER}
    return repo


@pytest.fixture
def subscriptions():
    repo = AsyncMock()

    async def by_customer(customer_id):
        if customer_id == "cus_known":
            return Subscription(user_id=CUSTOMER_USER, external_subscription_id="sub_1")
        return None

    repo.get_by_external_customer_id.side_effect = by_customer
    return repo


class TestResolve:
    @pytest.mark.asyncio
    async def test_user_id_resolves_when_user_exists(self, users, subscriptions):
        resolver = IdentityResolver(users, subscriptions)
        assert await resolver.resolve(KNOWN_USER, None) == KNOWN_USER

    @pytest.mark.asyncio
    async def test_user_id_is_normalised(self, users, subscriptions):
        resolver = IdentityResolver(users, subscriptions)
        assert await resolver.resolve(KNOWN_USER.upper(), None) == KNOWN_USER

    @pytest.mark.asyncio
    async def test_falls_back_to_customer_id(self, users, subscriptions):
        resolver = IdentityResolver(users, subscriptions)
        assert await resolver.resolve(str(uuid4()), "cus_known") == CUSTOMER_USER

    @pytest.mark.asyncio
    async def test_customer_id_only(self, users, subscriptions):
        resolver = IdentityResolver(users, subscriptions)
        assert await resolver.resolve(None, "cus_known") == CUSTOMER_USER
        users.exists.assert_not_called()

    @pytest.mark.asyncio
    async def test_user_id_wins_by_default(self, users, subscriptions):
        resolver = IdentityResolver(users, subscriptions)
        assert await resolver.resolve(KNOWN_USER, "cus_known") == KNOWN_USER
        subscriptions.get_by_external_customer_id.assert_not_called()

    @pytest.mark.asyncio
    async def test_customer_id_wins_when_preferred(self, users, subscriptions):
        resolver = IdentityResolver(users, subscriptions, prefer_customer_id=True)
        assert await resolver.resolve(KNOWN_USER, "cus_known") == CUSTOMER_USER
        users.exists.assert_not_called()

    @pytest.mark.asyncio
    async def test_nothing_resolves(self, users, subscriptions):
        resolver = IdentityResolver(users, subscriptions)
        assert await resolver.resolve(str(uuid4()), "cus_unknown") is None

    @pytest.mark.asyncio
    async def test_no_references(self, users, subscriptions):
        resolver = IdentityResolver(users, subscriptions)
        assert await resolver.resolve(None, None) is None
        users.exists.assert_not_called()
        subscriptions.get_by_external_customer_id.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_id", ["not-a-uuid", "1; DROP TABLE users", "12345"])
    async def test_malformed_user_id_never_reaches_store(self, users, subscriptions, bad_id):
        resolver = IdentityResolver(users, subscriptions)
        assert await resolver.resolve(bad_id, None) is None
        users.exists.assert_not_called()
