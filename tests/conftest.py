"""Pytest configuration and fixtures."""

import os

# Must be set before the application settings are first imported
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DISPLAY_LOCALE", "pt")
os.environ.setdefault("DISPLAY_TIMEZONE", "UTC")

from collections.abc import AsyncGenerator
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.security import create_access_token, hash_password
from app.db.base import Base
from app.db.session import get_db, get_session_factory
from app.main import app
from app.models.user import User
from app.services.messaging import MailProvider, MessageProviderError, get_mail_provider


# Use SQLite for testing (simpler than spinning up postgres)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class RecordingMailProvider(MailProvider):
    """Mail provider that keeps every message in memory."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    async def send(
        self,
        recipient: str,
        subject: str | None,
        body: str,
        html_body: str | None = None,
        **kwargs: Any,
    ) -> tuple[str, dict]:
        self.sent.append({
            "recipient": recipient,
            "subject": subject,
            "body": body,
            "html_body": html_body,
        })
        return f"test_{len(self.sent)}", {"provider": "test"}


class FailingMailProvider(MailProvider):
    """Mail provider whose server is always down."""

    def __init__(self) -> None:
        self.attempts = 0

    async def send(
        self,
        recipient: str,
        subject: str | None,
        body: str,
        html_body: str | None = None,
        **kwargs: Any,
    ) -> tuple[str, dict]:
        self.attempts += 1
        raise MessageProviderError("connection refused")


@pytest.fixture(scope="function")
async def async_engine():
    """Create async test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine, as used by background jobs."""
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest.fixture(scope="function")
async def async_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def mail_provider() -> RecordingMailProvider:
    """In-memory mail provider."""
    return RecordingMailProvider()


@pytest.fixture
def failing_mail_provider() -> FailingMailProvider:
    """Mail provider that always raises."""
    return FailingMailProvider()


@pytest.fixture(scope="function")
async def client(
    async_session: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
    mail_provider: RecordingMailProvider,
) -> AsyncGenerator[AsyncClient, None]:
    """Create HTTP test client with overridden dependencies."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield async_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_mail_provider] = lambda: mail_provider

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


async def _create_user(
    session: AsyncSession,
    name: str,
    email: str,
    password: str,
    is_provider: bool = False,
) -> User:
    user = User(
        name=name,
        email=email,
        hashed_password=hash_password(password),
        is_provider=is_provider,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest.fixture
async def test_user(async_session: AsyncSession) -> User:
    """Create a regular user who books appointments."""
    return await _create_user(
        async_session, "Ursula User", "ursula@slotbook.local", "userpassword123"
    )


@pytest.fixture
async def other_user(async_session: AsyncSession) -> User:
    """Create a second regular user."""
    return await _create_user(
        async_session, "Victor User", "victor@slotbook.local", "victorpassword123"
    )


@pytest.fixture
async def provider(async_session: AsyncSession) -> User:
    """Create a provider who accepts bookings."""
    return await _create_user(
        async_session,
        "Paula Provider",
        "paula@slotbook.local",
        "providerpassword123",
        is_provider=True,
    )


@pytest.fixture
async def second_provider(async_session: AsyncSession) -> User:
    """Create another provider."""
    return await _create_user(
        async_session,
        "Alan Provider",
        "alan@slotbook.local",
        "alanpassword123",
        is_provider=True,
    )


def create_test_token(user: User) -> str:
    """Create a test JWT token for a user."""
    return create_access_token(
        user_id=user.id,
        additional_claims={
            "email": user.email,
            "provider": user.is_provider,
        },
    )


def bearer(user: User) -> dict[str, str]:
    """Authorization headers for a user."""
    return {"Authorization": f"Bearer {create_test_token(user)}"}


@pytest.fixture
def auth_headers(test_user: User) -> dict[str, str]:
    """Create authorization headers for test user."""
    return bearer(test_user)


@pytest.fixture
def other_auth_headers(other_user: User) -> dict[str, str]:
    """Create authorization headers for the second user."""
    return bearer(other_user)


@pytest.fixture
def provider_auth_headers(provider: User) -> dict[str, str]:
    """Create authorization headers for the provider."""
    return bearer(provider)
