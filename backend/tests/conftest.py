"""
Pytest configuration and shared fixtures for backend tests.
"""

import hashlib
import hmac
import json
import sys
from pathlib import Path

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from typing import AsyncGenerator
from uuid import uuid4

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Import after path is set
from api.middleware.rate_limit import get_webhook_rate_limiter
from infrastructure.config import Settings, get_settings
from infrastructure.database.connection import get_db
from infrastructure.database.models import Base, User
from services.rate_limiter import FixedWindowRateLimiter


# Database URL for testing (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

WEBHOOK_SECRET = "whsec_test_secret"

PRODUCT_IDS = {
    "pro_monthly": "prod_pro_monthly",
    "pro_annual": "prod_pro_annual",
    "power_monthly": "prod_power_monthly",
    "power_annual": "prod_power_annual",
}


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    """Hex HMAC-SHA256 of *body*, as the provider sends it."""
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def encode(payload: dict) -> bytes:
    return json.dumps(payload, separators=(",", ":")).encode()


@pytest.fixture
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a signing secret and all four products configured."""
    return Settings(
        environment="development",
        polar_webhook_secret=WEBHOOK_SECRET,
        polar_pro_monthly_product_id=PRODUCT_IDS["pro_monthly"],
        polar_pro_annual_product_id=PRODUCT_IDS["pro_annual"],
        polar_power_monthly_product_id=PRODUCT_IDS["power_monthly"],
        polar_power_annual_product_id=PRODUCT_IDS["power_annual"],
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rate_limiter(clock: FakeClock) -> FixedWindowRateLimiter:
    """Fresh webhook limiter per test, driven by the fake clock."""
    return FixedWindowRateLimiter(
        max_requests=100,
        window_seconds=60.0,
        cleanup_interval_seconds=60.0,
        clock=clock,
    )


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user."""
    user = User(
        id=str(uuid4()),
        email="test@example.com",
        name="Test User",
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def async_client(
    db_session: AsyncSession,
    test_settings: Settings,
    rate_limiter: FixedWindowRateLimiter,
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    # Import app here to avoid circular imports
    from main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_webhook_rate_limiter] = lambda: rate_limiter

    # Reset slowapi state between tests to prevent cross-test 429s
    app.state.limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
