"""Global test configuration and fixtures for the IELTS practice API."""

import os

# Settings are read at import time, so the test environment goes in first
os.environ["ENVIRONMENT"] = "TEST"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-key-for-testing-only"
os.environ["APP_ENCRYPTION_KEY"] = "test-encryption-key-0123456789abcdef"
os.environ["GEMINI_BACKOFF_BASE_SECONDS"] = "0"
os.environ["GEMINI_BACKOFF_MAX_SECONDS"] = "0"

from collections.abc import AsyncGenerator
from typing import Callable
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from jose import jwt
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from src.api.core.constants import JWT_ALGORITHM
from src.core.context import AuthenticatedUserContext
from src.database.models import Base
from src.utils.settings.auth import AuthSettings
from src.utils.settings.gemini import GeminiSettings
from tests.factories import ApiKeyFactory, DailyCreditUsageFactory, UserSecretFactory
from tests.utils.gemini import FakeGeminiClient


@pytest.fixture
def encryption_key() -> SecretStr:
    return SecretStr(os.environ["APP_ENCRYPTION_KEY"])


@pytest.fixture
def api_key_factory():
    return ApiKeyFactory


@pytest.fixture
def user_secret_factory():
    return UserSecretFactory


@pytest.fixture
def credit_usage_factory():
    return DailyCreditUsageFactory


@pytest.fixture
def test_database_uri(tmp_path) -> str:
    """File-backed SQLite database per test, so separate sessions really contend."""
    return f"sqlite+aiosqlite:///{tmp_path / 'practice.db'}"


@pytest_asyncio.fixture
async def async_engine(test_database_uri):
    """Create async engine for the test database."""
    engine = create_async_engine(
        test_database_uri,
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=async_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session. Services commit, so isolation comes from the per-test file."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def gemini_settings() -> GeminiSettings:
    return GeminiSettings(
        GEMINI_BACKOFF_BASE_SECONDS=0,
        GEMINI_BACKOFF_MAX_SECONDS=0,
    )


@pytest.fixture
def fake_gemini() -> FakeGeminiClient:
    return FakeGeminiClient()


@pytest.fixture
def no_sleep() -> Callable:
    delays: list[float] = []

    async def _sleep(delay: float) -> None:
        delays.append(delay)

    _sleep.delays = delays
    return _sleep


@pytest.fixture
def test_user_id() -> UUID:
    return uuid4()


@pytest.fixture
def current_user(test_user_id: UUID) -> AuthenticatedUserContext:
    return AuthenticatedUserContext(user_id=test_user_id, email="candidate@example.com")


@pytest_asyncio.fixture
async def app(session_factory, fake_gemini: FakeGeminiClient):
    """Create FastAPI application with lifespan manager for testing."""
    from src.main import app

    async with LifespanManager(app):
        real_client = app.state.gemini_client
        app.state.session_factory = session_factory
        app.state.gemini_client = fake_gemini
        yield app
        app.state.gemini_client = real_client
    app.dependency_overrides.clear()


# JWT Token Fixtures
@pytest.fixture()
def jwt_token_factory() -> Callable[..., str]:
    """Factory for creating JWT tokens for test users."""
    auth_settings = AuthSettings()

    def create_token(user_id: str, email: str = "candidate@example.com", role: str = "authenticated") -> str:
        payload = {
            "sub": user_id,
            "email": email,
            "role": role,
            "aud": auth_settings.JWT_AUDIENCE,
            "app_metadata": {"provider": "email", "providers": ["email"]},
            "is_anonymous": role == "anon",
        }
        return jwt.encode(payload, auth_settings.SUPABASE_JWT_SECRET, algorithm=JWT_ALGORITHM)

    return create_token


@pytest.fixture
def user_token(test_user_id: UUID, jwt_token_factory) -> str:
    return jwt_token_factory(str(test_user_id))


# HTTP Client Fixtures
@pytest_asyncio.fixture
async def public_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create HTTP client for testing public endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test-practice-api",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def authorized_client(
    app: FastAPI, user_token: str
) -> AsyncGenerator[AsyncClient, None]:
    """Create HTTP client with JWT authorization headers."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test-practice-api",
        headers={"Authorization": f"Bearer {user_token}"},
    ) as ac:
        yield ac
