"""Pytest configuration for all tests."""

from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from authforge.core.clock import FrozenClock
from authforge.core.config import Settings
from authforge.domain.services.auth_service import AuthService
from authforge.infrastructure.api.dependencies import build_auth_service
from authforge.infrastructure.persistence import models  # noqa: F401
from authforge.infrastructure.persistence.database import Base
from authforge.infrastructure.services.email.email_provider import LoggingEmailProvider
from authforge.infrastructure.services.notification_service import NotificationService

TEST_START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
STRONG_PASSWORD = "Correct-Horse-9"


def make_settings(**overrides) -> Settings:
    """Settings isolated from the environment and any .env file."""
    values = {
        "environment": "testing",
        "secret_key": "test-secret-key-for-authforge-tests-only",
        "database_url": "sqlite+aiosqlite:///:memory:",
        "max_failed_login_attempts": 3,
        "lockout_duration_minutes": 30,
        "password_history_count": 3,
        "log_format": "console",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def settings_factory():
    """Build settings with test defaults plus the given overrides."""
    return make_settings


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(TEST_START)


@pytest.fixture
def email_provider() -> LoggingEmailProvider:
    return LoggingEmailProvider()


@pytest.fixture
def notification_service(
    email_provider: LoggingEmailProvider, settings: Settings
) -> NotificationService:
    return NotificationService(provider=email_provider, settings=settings)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session.

    Uses an in-memory SQLite database shared through a StaticPool.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def auth_service(
    db_session: AsyncSession,
    settings: Settings,
    clock: FrozenClock,
    notification_service: NotificationService,
) -> AuthService:
    return build_auth_service(
        db_session, settings, clock=clock, notification_service=notification_service
    )


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    settings: Settings,
    clock: FrozenClock,
    notification_service: NotificationService,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with overridden database dependency."""
    from authforge.infrastructure.api.app import create_app
    from authforge.infrastructure.persistence.database import get_db_session

    app = create_app(settings, clock=clock, notification_service=notification_service)
    app.dependency_overrides[get_db_session] = lambda: db_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}
