"""Pytest configuration for unit tests."""

import uuid

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from authforge.core.clock import FrozenClock
from authforge.infrastructure.auth.password_hasher import hash_password
from authforge.infrastructure.persistence.models import UserModel

USER_PASSWORD = "Orig1nal-Pass!"


@pytest_asyncio.fixture
async def user(db_session: AsyncSession, clock: FrozenClock) -> UserModel:
    """Insert an active user straight into the database."""
    now = clock()
    model = UserModel(
        id=str(uuid.uuid4()),
        email="seeded@acme.io",
        password_hash=hash_password(USER_PASSWORD),
        role="user",
        is_active=True,
        email_verified=True,
        failed_login_attempts=0,
        mfa_enabled=False,
        password_changed_at=now,
        created_at=now,
        updated_at=now,
    )
    db_session.add(model)
    await db_session.commit()
    return model
