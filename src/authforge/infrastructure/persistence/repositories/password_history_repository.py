"""Repository for password history entries."""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from authforge.core.clock import ensure_aware
from authforge.domain.entities.password_history import PasswordHistoryEntry
from authforge.infrastructure.persistence.models import PasswordHistoryModel


class PasswordHistoryRepository:
    """Repository for password history database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _to_entity(self, model: PasswordHistoryModel) -> PasswordHistoryEntry:
        return PasswordHistoryEntry(
            id=model.id,
            user_id=model.user_id,
            password_hash=model.password_hash,
            created_at=ensure_aware(model.created_at),
        )

    async def add(self, entry: PasswordHistoryEntry) -> PasswordHistoryEntry:
        """Append an entry.

        Args:
            entry: The entry to store.

        Returns:
            The stored entry.
        """
        model = PasswordHistoryModel(
            user_id=entry.user_id,
            password_hash=entry.password_hash,
            created_at=entry.created_at,
        )
        self._session.add(model)
        await self._session.flush()
        return self._to_entity(model)

    async def get_recent(self, user_id: str, limit: int) -> list[PasswordHistoryEntry]:
        """Get the newest ``limit`` entries of a user, newest first."""
        result = await self._session.execute(
            select(PasswordHistoryModel)
            .where(PasswordHistoryModel.user_id == user_id)
            .order_by(PasswordHistoryModel.id.desc())
            .limit(limit)
        )
        return [self._to_entity(model) for model in result.scalars().all()]

    async def delete_older_than_newest(self, user_id: str, keep_count: int) -> int:
        """Delete everything but the newest ``keep_count`` entries of a user.

        Returns:
            Number of entries deleted.
        """
        keep_ids = (
            select(PasswordHistoryModel.id)
            .where(PasswordHistoryModel.user_id == user_id)
            .order_by(PasswordHistoryModel.id.desc())
            .limit(keep_count)
            .scalar_subquery()
        )
        result = await self._session.execute(
            delete(PasswordHistoryModel).where(
                PasswordHistoryModel.user_id == user_id,
                PasswordHistoryModel.id.not_in(keep_ids),
            )
        )
        return result.rowcount
