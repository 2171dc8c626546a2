"""SQLAlchemy model for the users table.

Users are identified by a globally unique, lower-cased email. The row also
carries the account's lock state and the digests of its outstanding
single-use challenges (reset, recovery, email verification).
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from authforge.infrastructure.persistence.database import Base


class UserModel(Base):
    """SQLAlchemy model for the users table.

    Attributes:
        id: Primary key (UUID string).
        email: User's email address, stored lower-cased (unique).
        password_hash: Argon2 hash of the current password.
        role: Role claim copied into access tokens.
        is_active: Whether the user can log in.
        first_name: Optional profile field.
        last_name: Optional profile field.
        email_verified: Whether the email address has been confirmed.
        email_verification_token: SHA-256 digest of the live verification token.
        email_verification_expiry: When the verification token expires.
        failed_login_attempts: Consecutive failed logins since the last success.
        locked_until: Account is locked while this is in the future.
        last_login: Timestamp of last successful login.
        password_changed_at: When the current password was set.
        mfa_enabled: Whether a second factor is required at login.
        mfa_secret: Base32 TOTP secret (set during enrollment).
        mfa_type: Second factor kind, currently only "totp".
        reset_token: SHA-256 digest of the live password reset token.
        reset_token_expiry: When the reset token expires.
        account_recovery_token: SHA-256 digest of the live recovery token.
        account_recovery_token_expiry: When the recovery token expires.
        created_at: Timestamp when the user was created.
        updated_at: Timestamp when the user was last updated.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="User ID (UUID)",
    )
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Lower-cased email address",
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Argon2 password hash",
    )
    role: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="user",
        server_default="user",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Whether the user can log in",
    )
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_verification_token: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True,
        comment="SHA-256 digest of the email verification token",
    )
    email_verification_expiry: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    failed_login_attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Consecutive failed logins",
    )
    locked_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Lockout end; null when unlocked",
    )
    last_login: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Timestamp of last successful login",
    )
    password_changed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    mfa_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    mfa_secret: Mapped[str | None] = mapped_column(String(64), nullable=True)
    mfa_type: Mapped[str | None] = mapped_column(String(20), nullable=True)

    reset_token: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True,
        comment="SHA-256 digest of the password reset token",
    )
    reset_token_expiry: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    account_recovery_token: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True,
        comment="SHA-256 digest of the account recovery token",
    )
    account_recovery_token_expiry: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    @property
    def full_name(self) -> str | None:
        parts = [part for part in (self.first_name, self.last_name) if part]
        return " ".join(parts) or None

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
