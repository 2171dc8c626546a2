"""Session registry.

Creates, looks up and revokes login sessions. Methods flush through the
repository and leave the commit to the caller, except where a revocation is
a side effect of rejecting a request (idle sessions) or the operation is a
standalone sweep.
"""

import uuid
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from authforge.core.clock import Clock, utc_now
from authforge.core.config import Settings, get_settings
from authforge.core.logging import get_logger
from authforge.domain.entities.session import DeviceInfo, Session
from authforge.infrastructure.persistence.repositories.session_repository import (
    SessionRepository,
)

logger = get_logger(__name__)

SYSTEM_ACTOR = "system"


class SessionService:
    """Service managing the lifecycle of login sessions."""

    def __init__(
        self,
        session: AsyncSession,
        session_repo: SessionRepository,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the session service.

        Args:
            session: SQLAlchemy async session.
            session_repo: Repository for session rows.
            settings: Application settings.
            clock: Time source.
        """
        self.session = session
        self.session_repo = session_repo
        self.settings = settings or get_settings()
        self.clock = clock or utc_now

    @property
    def idle_timeout(self) -> timedelta:
        return timedelta(minutes=self.settings.session_idle_timeout_minutes)

    async def create(self, user_id: str, device_info: DeviceInfo | None = None) -> Session:
        """Open a new session for a user.

        Args:
            user_id: The user's UUID.
            device_info: Advisory description of the client.

        Returns:
            The created session.
        """
        now = self.clock()
        device_info = device_info or DeviceInfo()
        created = await self.session_repo.create(
            Session(
                id=str(uuid.uuid4()),
                user_id=user_id,
                expires_at=now + timedelta(hours=self.settings.session_expire_hours),
                created_at=now,
                device_info=device_info,
                ip_address=device_info.ip_address,
                user_agent=device_info.user_agent,
                last_activity_at=now,
            )
        )
        logger.info(
            "Session created",
            user_id=user_id,
            session_id=created.id,
            ip_address=device_info.ip_address,
        )
        return created

    async def get(self, session_id: str) -> Session | None:
        return await self.session_repo.get_by_id(session_id)

    async def find_active_by_user(self, user_id: str) -> list[Session]:
        """List a user's live sessions, most recently used first."""
        return await self.session_repo.list_active_for_user(user_id, self.clock())

    async def is_session_valid(self, user_id: str, session_id: str) -> bool:
        """Check that a session belongs to the user and may still be used.

        A session idle for longer than the configured timeout is revoked as a
        side effect and reported invalid.

        Args:
            user_id: Expected owner.
            session_id: Session to check.

        Returns:
            True if the session is active, unexpired, not idle, and owned by
            the user.
        """
        found = await self.session_repo.get_by_id(session_id)
        now = self.clock()
        if found is None or found.user_id != user_id or not found.is_usable(now):
            return False
        if found.is_idle(now, self.idle_timeout):
            await self.session_repo.revoke(session_id, SYSTEM_ACTOR, "Session idle timeout", now)
            await self.session.commit()
            logger.info("Idle session revoked", user_id=user_id, session_id=session_id)
            return False
        return True

    async def remaining_seconds(self, session_id: str) -> int:
        """Seconds until the session ends by hard expiry or idleness.

        Returns:
            Remaining seconds, 0 for unknown or unusable sessions.
        """
        found = await self.session_repo.get_by_id(session_id)
        now = self.clock()
        if found is None or not found.is_usable(now):
            return 0
        last_seen = found.last_activity_at or found.created_at
        deadline = min(found.expires_at, last_seen + self.idle_timeout)
        return max(int((deadline - now).total_seconds()), 0)

    async def revoke(self, session_id: str, revoked_by: str | None, reason: str) -> bool:
        """Deactivate one session.

        Returns:
            True if the session was active and is now revoked.
        """
        revoked = await self.session_repo.revoke(session_id, revoked_by, reason, self.clock())
        if revoked:
            logger.info("Session revoked", session_id=session_id, reason=reason)
        return revoked

    async def revoke_all_user_sessions(
        self,
        user_id: str,
        reason: str,
        revoked_by: str | None = None,
        except_session_id: str | None = None,
    ) -> int:
        """Deactivate every active session of a user, optionally sparing one.

        Returns:
            Number of sessions revoked.
        """
        count = await self.session_repo.revoke_all_for_user(
            user_id,
            revoked_by or user_id,
            reason,
            self.clock(),
            except_session_id=except_session_id,
        )
        logger.info("User sessions revoked", user_id=user_id, count=count, reason=reason)
        return count

    async def touch(self, session_id: str) -> None:
        """Record activity on a session within the caller's transaction."""
        await self.session_repo.touch(session_id, self.clock())

    async def update_last_activity(self, session_id: str) -> None:
        """Record activity on a session. Failures are logged, never raised."""
        try:
            await self.touch(session_id)
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.warning(
                "Failed to update session activity", session_id=session_id, error=str(e)
            )

    async def cleanup_expired_sessions(self) -> int:
        """Delete sessions that expired, or were revoked before the retention window.

        Returns:
            Number of sessions deleted.
        """
        now = self.clock()
        cutoff = now - timedelta(days=self.settings.token_retention_days)
        deleted = await self.session_repo.delete_stale(expired_before=now, revoked_before=cutoff)
        await self.session.commit()
        logger.info("Expired sessions cleaned up", deleted=deleted)
        return deleted
