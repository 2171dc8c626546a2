"""SQLAlchemy model for refresh tokens.

Only the SHA-256 digest of each signed refresh token is stored. Tokens
produced by rotating one login share a ``family``.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from authforge.infrastructure.persistence.database import Base


class RefreshTokenModel(Base):
    """Refresh token model for rotation and replay detection."""

    __tablename__ = "refresh_tokens"

    # Equal to the jti claim of the signed token
    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    token_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        index=True,
    )

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    session_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    family: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    is_revoked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    revoked_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    revocation_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_refresh_tokens_expires_at", "expires_at"),
        Index("ix_refresh_tokens_user_revoked", "user_id", "is_revoked"),
    )

    def __repr__(self) -> str:
        return f"<RefreshToken(id={self.id}, family={self.family}, is_revoked={self.is_revoked})>"
