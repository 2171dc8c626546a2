from datetime import timedelta

import pytest

from authforge.domain.entities.session import DeviceInfo
from authforge.domain.services.session_service import SessionService
from authforge.infrastructure.persistence.repositories import SessionRepository


@pytest.fixture
def session_service(db_session, settings, clock):
    return SessionService(db_session, SessionRepository(db_session), settings, clock)


class TestSessionService:

    @pytest.mark.asyncio
    async def test_create_session(self, session_service, user, clock):
        device = DeviceInfo(ip_address="10.0.0.5", user_agent="pytest", device="desktop")
        session = await session_service.create(user.id, device)

        assert session.user_id == user.id
        assert session.is_active
        assert session.ip_address == "10.0.0.5"
        assert session.last_activity_at == clock()
        assert session.expires_at == clock() + timedelta(hours=24)

        stored = await session_service.get(session.id)
        assert stored.device_info.device == "desktop"

    @pytest.mark.asyncio
    async def test_session_valid_only_for_owner(self, session_service, user):
        session = await session_service.create(user.id)
        assert await session_service.is_session_valid(user.id, session.id)
        assert not await session_service.is_session_valid("someone-else", session.id)
        assert not await session_service.is_session_valid(user.id, "missing")

    @pytest.mark.asyncio
    async def test_idle_session_is_revoked(self, session_service, user, clock):
        session = await session_service.create(user.id)

        clock.advance(minutes=31)
        assert not await session_service.is_session_valid(user.id, session.id)

        stored = await session_service.get(session.id)
        assert not stored.is_active
        assert stored.revocation_reason == "Session idle timeout"

    @pytest.mark.asyncio
    async def test_activity_extends_idle_window(self, session_service, user, clock):
        session = await session_service.create(user.id)

        clock.advance(minutes=20)
        await session_service.update_last_activity(session.id)
        clock.advance(minutes=20)

        assert await session_service.is_session_valid(user.id, session.id)

    @pytest.mark.asyncio
    async def test_hard_expiry(self, session_service, user, clock):
        session = await session_service.create(user.id)
        for _ in range(25):
            clock.advance(hours=1)
            await session_service.update_last_activity(session.id)
            if clock() >= session.expires_at:
                break

        assert not await session_service.is_session_valid(user.id, session.id)

    @pytest.mark.asyncio
    async def test_remaining_seconds(self, session_service, user, clock):
        session = await session_service.create(user.id)
        assert await session_service.remaining_seconds(session.id) == 30 * 60

        clock.advance(minutes=10)
        assert await session_service.remaining_seconds(session.id) == 20 * 60

        await session_service.revoke(session.id, user.id, "User logout")
        assert await session_service.remaining_seconds(session.id) == 0

    @pytest.mark.asyncio
    async def test_revoke_is_idempotent(self, session_service, user):
        session = await session_service.create(user.id)
        assert await session_service.revoke(session.id, user.id, "User logout")
        assert not await session_service.revoke(session.id, user.id, "User logout")

    @pytest.mark.asyncio
    async def test_revoke_all_except_current(self, session_service, user):
        keep = await session_service.create(user.id)
        await session_service.create(user.id)
        await session_service.create(user.id)

        revoked = await session_service.revoke_all_user_sessions(
            user.id, "Password changed", except_session_id=keep.id
        )

        assert revoked == 2
        active = await session_service.find_active_by_user(user.id)
        assert [s.id for s in active] == [keep.id]

    @pytest.mark.asyncio
    async def test_active_sessions_most_recent_first(self, session_service, user, clock):
        older = await session_service.create(user.id)
        clock.advance(minutes=1)
        newer = await session_service.create(user.id)
        clock.advance(minutes=1)
        await session_service.update_last_activity(older.id)

        active = await session_service.find_active_by_user(user.id)
        assert [s.id for s in active] == [older.id, newer.id]

    @pytest.mark.asyncio
    async def test_cleanup_expired_sessions(self, session_service, user, clock):
        await session_service.create(user.id)
        clock.advance(hours=25)
        live = await session_service.create(user.id)

        assert await session_service.cleanup_expired_sessions() == 1
        assert await session_service.get(live.id) is not None
