"""Repository for refresh token operations.

Provides database operations for storing, rotating and revoking refresh
tokens. Revocations are conditional updates so callers can tell whether
their own call performed the transition.
"""

import hashlib
from datetime import datetime

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from authforge.core.clock import ensure_aware
from authforge.domain.entities.refresh_token import RefreshToken
from authforge.infrastructure.persistence.models import RefreshTokenModel


class RefreshTokenRepository:
    """Repository for refresh token database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    @staticmethod
    def hash_token(token: str) -> str:
        """Hash a token using SHA-256.

        Args:
            token: The raw JWT token string.

        Returns:
            SHA-256 hex digest of the token.
        """
        return hashlib.sha256(token.encode()).hexdigest()

    def _to_model(self, entity: RefreshToken) -> RefreshTokenModel:
        """Convert domain entity to infrastructure model."""
        return RefreshTokenModel(
            id=entity.id,
            token_hash=entity.token_hash,
            user_id=entity.user_id,
            session_id=entity.session_id,
            family=entity.family,
            is_revoked=entity.is_revoked,
            revoked_at=entity.revoked_at,
            revoked_by=entity.revoked_by,
            revocation_reason=entity.revocation_reason,
            expires_at=entity.expires_at,
            created_at=entity.created_at,
        )

    def _to_entity(self, model: RefreshTokenModel) -> RefreshToken:
        """Convert infrastructure model to domain entity."""
        return RefreshToken(
            id=model.id,
            token_hash=model.token_hash,
            user_id=model.user_id,
            session_id=model.session_id,
            family=model.family,
            expires_at=ensure_aware(model.expires_at),
            created_at=ensure_aware(model.created_at),
            is_revoked=model.is_revoked,
            revoked_at=ensure_aware(model.revoked_at),
            revoked_by=model.revoked_by,
            revocation_reason=model.revocation_reason,
        )

    async def create(self, entity: RefreshToken) -> RefreshToken:
        """Store a new refresh token.

        Args:
            entity: The RefreshToken entity to store.

        Returns:
            The stored entity.
        """
        model = self._to_model(entity)
        self._session.add(model)
        await self._session.flush()
        return self._to_entity(model)

    async def get_by_hash(self, token_hash: str) -> RefreshToken | None:
        """Look up a refresh token by its digest.

        Args:
            token_hash: SHA-256 hex digest of the bearer value.

        Returns:
            The RefreshToken entity if found, None otherwise.
        """
        result = await self._session.execute(
            select(RefreshTokenModel)
            .where(RefreshTokenModel.token_hash == token_hash)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def revoke_if_active(
        self,
        token_hash: str,
        revoked_by: str | None,
        reason: str,
        now: datetime,
    ) -> bool:
        """Revoke one token, but only if nobody revoked it first.

        Returns:
            True if this call flipped the token from live to revoked.
        """
        result = await self._session.execute(
            update(RefreshTokenModel)
            .where(
                RefreshTokenModel.token_hash == token_hash,
                RefreshTokenModel.is_revoked == False,  # noqa: E712
            )
            .values(
                is_revoked=True,
                revoked_at=now,
                revoked_by=revoked_by,
                revocation_reason=reason,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def _revoke_where(
        self, condition, revoked_by: str | None, reason: str, now: datetime
    ) -> int:
        result = await self._session.execute(
            update(RefreshTokenModel)
            .where(condition, RefreshTokenModel.is_revoked == False)  # noqa: E712
            .values(
                is_revoked=True,
                revoked_at=now,
                revoked_by=revoked_by,
                revocation_reason=reason,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def revoke_family(
        self, family: str, revoked_by: str | None, reason: str, now: datetime
    ) -> int:
        """Revoke every live token in a rotation family.

        Returns:
            Number of tokens revoked.
        """
        return await self._revoke_where(
            RefreshTokenModel.family == family, revoked_by, reason, now
        )

    async def revoke_for_session(
        self, session_id: str, revoked_by: str | None, reason: str, now: datetime
    ) -> int:
        """Revoke every live token bound to a session."""
        return await self._revoke_where(
            RefreshTokenModel.session_id == session_id, revoked_by, reason, now
        )

    async def revoke_all_for_user(
        self, user_id: str, revoked_by: str | None, reason: str, now: datetime
    ) -> int:
        """Revoke all refresh tokens for a user.

        Returns:
            Number of tokens revoked.
        """
        return await self._revoke_where(
            RefreshTokenModel.user_id == user_id, revoked_by, reason, now
        )

    async def list_for_user(self, user_id: str, include_revoked: bool = False) -> list[RefreshToken]:
        """List a user's refresh tokens, newest first."""
        stmt = select(RefreshTokenModel).where(RefreshTokenModel.user_id == user_id)
        if not include_revoked:
            stmt = stmt.where(RefreshTokenModel.is_revoked == False)  # noqa: E712
        result = await self._session.execute(
            stmt.order_by(RefreshTokenModel.created_at.desc()).execution_options(
                populate_existing=True
            )
        )
        return [self._to_entity(model) for model in result.scalars().all()]

    async def count_for_session(self, session_id: str) -> int:
        result = await self._session.execute(
            select(func.count(RefreshTokenModel.id)).where(
                RefreshTokenModel.session_id == session_id
            )
        )
        return result.scalar_one()

    async def list_for_family(self, family: str) -> list[RefreshToken]:
        result = await self._session.execute(
            select(RefreshTokenModel)
            .where(RefreshTokenModel.family == family)
            .order_by(RefreshTokenModel.created_at)
            .execution_options(populate_existing=True)
        )
        return [self._to_entity(model) for model in result.scalars().all()]

    async def delete_expired(self, now: datetime, revoked_before: datetime) -> int:
        """Delete expired tokens and tokens revoked before the retention cutoff.

        Returns:
            Number of tokens deleted.
        """
        result = await self._session.execute(
            delete(RefreshTokenModel).where(
                or_(
                    RefreshTokenModel.expires_at < now,
                    and_(
                        RefreshTokenModel.is_revoked == True,  # noqa: E712
                        RefreshTokenModel.revoked_at < revoked_before,
                    ),
                )
            )
        )
        return result.rowcount
