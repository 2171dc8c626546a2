"""User repository for database operations."""

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from authforge.infrastructure.persistence.models import UserModel


class UserRepository:
    """Repository for user database operations.

    Lookups that precede a mutation of lock state or credentials accept
    ``for_update=True`` so concurrent requests for the same account are
    serialized by the database row lock.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    @staticmethod
    def normalize_email(email: str) -> str:
        return email.strip().lower()

    async def create(self, user: UserModel) -> UserModel:
        """Create a new user.

        Args:
            user: User model to create.

        Returns:
            Created user model.
        """
        user.email = self.normalize_email(user.email)
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: str, for_update: bool = False) -> UserModel | None:
        """Get a user by ID.

        Args:
            user_id: User ID (UUID string).
            for_update: Lock the row until the transaction ends.

        Returns:
            User model if found, None otherwise.
        """
        stmt = select(UserModel).where(UserModel.id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str, for_update: bool = False) -> UserModel | None:
        """Get a user by email address, case-insensitively.

        Args:
            email: Email address as typed by the user.
            for_update: Lock the row until the transaction ends.

        Returns:
            User model if found, None otherwise.
        """
        stmt = select(UserModel).where(
            func.lower(UserModel.email) == self.normalize_email(email)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def email_exists(self, email: str) -> bool:
        result = await self.session.execute(
            select(UserModel.id).where(
                func.lower(UserModel.email) == self.normalize_email(email)
            )
        )
        return result.scalar_one_or_none() is not None

    async def get_by_reset_token(self, token_hash: str, for_update: bool = False) -> UserModel | None:
        """Get the user holding a password reset token digest."""
        stmt = select(UserModel).where(UserModel.reset_token == token_hash)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_recovery_token(
        self, token_hash: str, for_update: bool = False
    ) -> UserModel | None:
        """Get the user holding an account recovery token digest."""
        stmt = select(UserModel).where(UserModel.account_recovery_token == token_hash)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_verification_token(self, token_hash: str) -> UserModel | None:
        """Get the user holding an email verification token digest."""
        result = await self.session.execute(
            select(UserModel).where(UserModel.email_verification_token == token_hash)
        )
        return result.scalar_one_or_none()

    async def consume_reset_token(self, user_id: str, token_hash: str, now: datetime) -> bool:
        """Clear a live reset token in a single conditional update.

        The expiry check and the consumption happen in the same statement, so
        of two concurrent requests presenting the same token only one sees a
        changed row.

        Args:
            user_id: Owner of the token.
            token_hash: SHA-256 digest of the presented token.
            now: Current time.

        Returns:
            True if this call consumed the token, False otherwise.
        """
        result = await self.session.execute(
            update(UserModel)
            .where(
                UserModel.id == user_id,
                UserModel.reset_token == token_hash,
                UserModel.reset_token_expiry > now,
            )
            .values(reset_token=None, reset_token_expiry=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def consume_recovery_token(self, user_id: str, token_hash: str, now: datetime) -> bool:
        """Clear a live account recovery token in a single conditional update.

        Returns:
            True if this call consumed the token, False otherwise.
        """
        result = await self.session.execute(
            update(UserModel)
            .where(
                UserModel.id == user_id,
                UserModel.account_recovery_token == token_hash,
                UserModel.account_recovery_token_expiry > now,
            )
            .values(account_recovery_token=None, account_recovery_token_expiry=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def consume_verification_token(
        self, user_id: str, token_hash: str, now: datetime
    ) -> bool:
        """Mark the email verified if the verification token is still live.

        Returns:
            True if this call consumed the token, False otherwise.
        """
        result = await self.session.execute(
            update(UserModel)
            .where(
                UserModel.id == user_id,
                UserModel.email_verification_token == token_hash,
                UserModel.email_verification_expiry > now,
            )
            .values(
                email_verified=True,
                email_verification_token=None,
                email_verification_expiry=None,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def update(self, user: UserModel) -> UserModel:
        """Flush pending changes on a user.

        Args:
            user: User model with updated fields.

        Returns:
            Updated user model.
        """
        await self.session.flush()
        return user

    async def refresh(self, user: UserModel) -> UserModel:
        """Reload a user after a bulk update touched its row."""
        await self.session.refresh(user)
        return user
