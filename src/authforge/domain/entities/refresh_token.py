"""Refresh token entity.

Only the SHA-256 digest of the signed bearer value is stored. Tokens produced
by successive rotations of one login share a ``family``; at most one member
of a family is live at any time.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class RefreshToken:
    """Refresh token entity.

    Attributes:
        id: Token id, equal to the ``jti`` claim of the bearer value.
        token_hash: SHA-256 hex digest of the bearer value.
        user_id: Owning user.
        session_id: Owning session.
        family: Rotation lineage identifier.
        expires_at: When the token stops being exchangeable.
        created_at: When the token was minted.
        is_revoked: Whether the token has been revoked.
        revoked_at: When it was revoked.
        revoked_by: Who revoked it.
        revocation_reason: Why it was revoked.
    """

    id: str
    token_hash: str
    user_id: str
    session_id: str
    family: str
    expires_at: datetime
    created_at: datetime
    is_revoked: bool = False
    revoked_at: datetime | None = None
    revoked_by: str | None = None
    revocation_reason: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def is_valid(self, now: datetime) -> bool:
        return not self.is_revoked and not self.is_expired(now)
