"""Password history entry entity."""

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class PasswordHistoryEntry:
    """One prior password hash of a user.

    Attributes:
        user_id: Owning user.
        password_hash: Argon2 hash of the password at the time it was set.
        created_at: When the password was set.
        id: Storage-assigned sequence number, increasing with insertion order.
    """

    user_id: str
    password_hash: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: int | None = None
