"""
Pytest configuration and shared fixtures for backend tests.
"""

import sys
from pathlib import Path

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from typing import AsyncGenerator, Callable
from uuid import uuid4

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Import after path is set
from core.domain.user import SubscriptionTier, UserRole
from core.security import TokenService
from infrastructure.config import get_settings
from infrastructure.database.connection import get_db
from infrastructure.database.models import Base, User

settings = get_settings()
token_service = TokenService(
    secret_key=settings.jwt_secret_key,
    algorithm=settings.jwt_algorithm,
)


# Database URL for testing (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


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


def bearer(user: User) -> dict:
    """Authorization header carrying a provider-style token for ``user``."""
    access_token = token_service.create_access_token(user_id=user.id, email=user.email)
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable:
    """Factory creating persisted users with the given tier and role."""

    async def _make_user(
        email: str,
        tier: str = SubscriptionTier.FREE.value,
        role: str = UserRole.USER.value,
        **extra,
    ) -> User:
        user = User(
            id=str(uuid4()),
            email=email,
            display_name=email.split("@")[0].title(),
            subscription_tier=tier,
            role=role,
            **extra,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
async def alice(make_user) -> User:
    """Pro subscriber; creates teams in most tests."""
    return await make_user("alice@acme.io", tier=SubscriptionTier.PRO_MONTHLY.value)


@pytest.fixture
async def bob(make_user) -> User:
    """Free-tier user."""
    return await make_user("bob@acme.io")


@pytest.fixture
async def carol(make_user) -> User:
    return await make_user("carol@acme.io")


@pytest.fixture
async def moderator(make_user) -> User:
    return await make_user("mod@vibe.dev", role=UserRole.MODERATOR.value)


@pytest.fixture
async def platform_admin(make_user) -> User:
    return await make_user("root@vibe.dev", role=UserRole.ADMIN.value)


@pytest.fixture
def auth_headers(alice: User) -> dict:
    """Authentication headers for alice."""
    return bearer(alice)


@pytest.fixture
def headers_for() -> Callable[[User], dict]:
    """Build authentication headers for any user."""
    return bearer


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    # Import app here to avoid circular imports
    from main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    # Reset rate limiter state between tests to prevent cross-test 429s
    app.state.limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def team(async_client: AsyncClient, auth_headers: dict) -> dict:
    """Team "Acme" owned by alice, created through the API."""
    response = await async_client.post(
        "/api/v1/teams", json={"name": "Acme", "description": "Acme Inc."}, headers=auth_headers
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def join_team(async_client: AsyncClient, auth_headers: dict) -> Callable:
    """Have alice invite a user and accept on their behalf; returns the active membership."""

    async def _join(team_id: str, user: User, role: str = "member") -> dict:
        invite = await async_client.post(
            f"/api/v1/teams/{team_id}/invitations",
            json={"email": user.email, "role": role},
            headers=auth_headers,
        )
        assert invite.status_code == 201, invite.text
        token = invite.json()["invite_url"].split("token=")[1]
        accepted = await async_client.post(f"/api/v1/invitations/{token}/accept", headers=bearer(user))
        assert accepted.status_code == 200, accepted.text
        return accepted.json()

    return _join
