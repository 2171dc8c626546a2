"""Repository for login sessions."""

from datetime import datetime

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from authforge.core.clock import ensure_aware
from authforge.domain.entities.session import DeviceInfo, Session
from authforge.infrastructure.persistence.models import SessionModel


class SessionRepository:
    """Repository for session database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    def _to_model(self, entity: Session) -> SessionModel:
        """Convert domain entity to infrastructure model."""
        return SessionModel(
            id=entity.id,
            user_id=entity.user_id,
            device_info=entity.device_info.to_dict(),
            ip_address=entity.ip_address,
            user_agent=entity.user_agent,
            is_active=entity.is_active,
            revoked_at=entity.revoked_at,
            revoked_by=entity.revoked_by,
            revocation_reason=entity.revocation_reason,
            last_activity_at=entity.last_activity_at,
            expires_at=entity.expires_at,
            created_at=entity.created_at,
        )

    def _to_entity(self, model: SessionModel) -> Session:
        """Convert infrastructure model to domain entity."""
        return Session(
            id=model.id,
            user_id=model.user_id,
            expires_at=ensure_aware(model.expires_at),
            created_at=ensure_aware(model.created_at),
            device_info=DeviceInfo.from_dict(model.device_info),
            ip_address=model.ip_address,
            user_agent=model.user_agent,
            is_active=model.is_active,
            last_activity_at=ensure_aware(model.last_activity_at),
            revoked_at=ensure_aware(model.revoked_at),
            revoked_by=model.revoked_by,
            revocation_reason=model.revocation_reason,
        )

    async def create(self, entity: Session) -> Session:
        """Store a new session.

        Args:
            entity: The Session entity to store.

        Returns:
            The stored entity.
        """
        model = self._to_model(entity)
        self._session.add(model)
        await self._session.flush()
        return self._to_entity(model)

    async def get_by_id(self, session_id: str) -> Session | None:
        """Look up a session by ID.

        Args:
            session_id: Session UUID.

        Returns:
            The Session entity if found, None otherwise.
        """
        result = await self._session.execute(
            select(SessionModel)
            .where(SessionModel.id == session_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_active_for_user(self, user_id: str, now: datetime) -> list[Session]:
        """List a user's active, unexpired sessions, most recently used first.

        Args:
            user_id: The user's UUID.
            now: Current time.

        Returns:
            List of Session entities.
        """
        result = await self._session.execute(
            select(SessionModel)
            .where(
                SessionModel.user_id == user_id,
                SessionModel.is_active == True,  # noqa: E712
                SessionModel.expires_at > now,
            )
            .order_by(
                func.coalesce(SessionModel.last_activity_at, SessionModel.created_at).desc()
            )
            .execution_options(populate_existing=True)
        )
        return [self._to_entity(model) for model in result.scalars().all()]

    async def revoke(
        self, session_id: str, revoked_by: str | None, reason: str, now: datetime
    ) -> bool:
        """Deactivate a session if it is still active.

        Returns:
            True if this call revoked the session.
        """
        result = await self._session.execute(
            update(SessionModel)
            .where(
                SessionModel.id == session_id,
                SessionModel.is_active == True,  # noqa: E712
            )
            .values(
                is_active=False,
                revoked_at=now,
                revoked_by=revoked_by,
                revocation_reason=reason,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def revoke_all_for_user(
        self,
        user_id: str,
        revoked_by: str | None,
        reason: str,
        now: datetime,
        except_session_id: str | None = None,
    ) -> int:
        """Deactivate every active session of a user.

        Args:
            user_id: The user's UUID.
            revoked_by: Who requested the revocation.
            reason: Revocation reason stored on each row.
            now: Current time.
            except_session_id: Session to leave untouched.

        Returns:
            Number of sessions revoked.
        """
        conditions = [
            SessionModel.user_id == user_id,
            SessionModel.is_active == True,  # noqa: E712
        ]
        if except_session_id is not None:
            conditions.append(SessionModel.id != except_session_id)
        result = await self._session.execute(
            update(SessionModel)
            .where(*conditions)
            .values(
                is_active=False,
                revoked_at=now,
                revoked_by=revoked_by,
                revocation_reason=reason,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def touch(self, session_id: str, now: datetime) -> None:
        await self._session.execute(
            update(SessionModel)
            .where(SessionModel.id == session_id)
            .values(last_activity_at=now)
            .execution_options(synchronize_session=False)
        )

    async def delete_stale(self, expired_before: datetime, revoked_before: datetime) -> int:
        """Delete sessions that expired or were revoked before the given times.

        Returns:
            Number of sessions deleted.
        """
        result = await self._session.execute(
            delete(SessionModel).where(
                or_(
                    SessionModel.expires_at < expired_before,
                    and_(
                        SessionModel.is_active == False,  # noqa: E712
                        SessionModel.revoked_at < revoked_before,
                    ),
                )
            )
        )
        return result.rowcount
