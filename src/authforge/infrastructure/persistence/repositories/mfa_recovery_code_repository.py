"""Repository for MFA recovery codes."""

from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from authforge.infrastructure.persistence.models import MfaRecoveryCodeModel


class MfaRecoveryCodeRepository:
    """Repository for MFA recovery code database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def replace_for_user(self, user_id: str, code_hashes: list[str], now: datetime) -> None:
        """Drop a user's existing codes and store a fresh set of digests."""
        await self._session.execute(
            delete(MfaRecoveryCodeModel).where(MfaRecoveryCodeModel.user_id == user_id)
        )
        self._session.add_all(
            MfaRecoveryCodeModel(user_id=user_id, code_hash=code_hash, created_at=now)
            for code_hash in code_hashes
        )
        await self._session.flush()

    async def consume(self, user_id: str, code_hash: str, now: datetime) -> bool:
        """Spend an unused recovery code.

        Returns:
            True if a matching unused code was found and marked used.
        """
        result = await self._session.execute(
            select(MfaRecoveryCodeModel.id)
            .where(
                MfaRecoveryCodeModel.user_id == user_id,
                MfaRecoveryCodeModel.code_hash == code_hash,
                MfaRecoveryCodeModel.used_at.is_(None),
            )
            .limit(1)
        )
        code_id = result.scalar_one_or_none()
        if code_id is None:
            return False
        updated = await self._session.execute(
            update(MfaRecoveryCodeModel)
            .where(
                MfaRecoveryCodeModel.id == code_id,
                MfaRecoveryCodeModel.used_at.is_(None),
            )
            .values(used_at=now)
            .execution_options(synchronize_session=False)
        )
        return updated.rowcount == 1

    async def count_unused(self, user_id: str) -> int:
        result = await self._session.execute(
            select(func.count(MfaRecoveryCodeModel.id)).where(
                MfaRecoveryCodeModel.user_id == user_id,
                MfaRecoveryCodeModel.used_at.is_(None),
            )
        )
        return result.scalar_one()

    async def delete_for_user(self, user_id: str) -> int:
        result = await self._session.execute(
            delete(MfaRecoveryCodeModel).where(MfaRecoveryCodeModel.user_id == user_id)
        )
        return result.rowcount
