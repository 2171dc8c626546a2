"""SQLAlchemy model for previously used password hashes."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from authforge.infrastructure.persistence.database import Base


class PasswordHistoryModel(Base):
    """SQLAlchemy model for the password_history table.

    Attributes:
        id: Autoincrement primary key; higher means newer.
        user_id: Foreign key to users table.
        password_hash: Argon2 hash of a password the user has set.
        created_at: When that password was set.
    """

    __tablename__ = "password_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (Index("ix_password_history_user_created", "user_id", "created_at"),)
