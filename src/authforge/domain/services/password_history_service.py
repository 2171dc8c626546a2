"""Password history ledger.

Keeps the hashes of the most recent passwords of each user so a password
change can refuse recently used values. The current password is always the
newest entry.
"""

from authforge.core.clock import Clock, utc_now
from authforge.core.config import Settings, get_settings
from authforge.core.logging import get_logger
from authforge.domain.entities.password_history import PasswordHistoryEntry
from authforge.infrastructure.auth.password_hasher import verify_password
from authforge.infrastructure.persistence.repositories.password_history_repository import (
    PasswordHistoryRepository,
)

logger = get_logger(__name__)


class PasswordHistoryService:
    """Append, check and prune password history entries."""

    def __init__(
        self,
        history_repo: PasswordHistoryRepository,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.history_repo = history_repo
        self.settings = settings or get_settings()
        self.clock = clock or utc_now

    @property
    def retention(self) -> int:
        return max(self.settings.password_history_count, 1)

    async def add_to_history(self, user_id: str, password_hash: str) -> PasswordHistoryEntry:
        """Record a newly set password hash and prune older entries.

        Args:
            user_id: Owner of the password.
            password_hash: Argon2 hash that was just stored on the user.

        Returns:
            The stored entry.
        """
        entry = await self.history_repo.add(
            PasswordHistoryEntry(
                user_id=user_id,
                password_hash=password_hash,
                created_at=self.clock(),
            )
        )
        await self.prune_history(user_id, self.retention)
        return entry

    async def is_password_in_history(
        self, user_id: str, plain_password: str, history_count: int | None = None
    ) -> bool:
        """Check a candidate password against the newest N stored hashes.

        Args:
            user_id: Owner of the history.
            plain_password: Candidate password in clear text.
            history_count: How many entries to check; defaults to the
                configured retention.

        Returns:
            True if the candidate matches any of them.
        """
        count = history_count if history_count is not None else self.retention
        if count <= 0:
            return False
        for entry in await self.history_repo.get_recent(user_id, count):
            if verify_password(plain_password, entry.password_hash):
                logger.debug("Password matched history entry", user_id=user_id)
                return True
        return False

    async def prune_history(self, user_id: str, keep_count: int) -> int:
        """Delete everything but the newest ``keep_count`` entries.

        Returns:
            Number of entries deleted.
        """
        deleted = await self.history_repo.delete_older_than_newest(user_id, keep_count)
        if deleted:
            logger.debug("Password history pruned", user_id=user_id, deleted=deleted)
        return deleted
