"""Session entity.

A session is one continuous login on one device. It outlives any single
token pair: every refresh rotation within it stays bound to the same
session id, and a revoked session is never reused.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any


@dataclass
class DeviceInfo:
    """Advisory description of the client that opened a session.

    Attributes:
        ip_address: Client IP as seen by the API.
        user_agent: Raw User-Agent header.
        browser: Browser family, if known.
        os: Operating system, if known.
        device: Device class (desktop, mobile, ...), if known.
    """

    ip_address: str | None = None
    user_agent: str | None = None
    browser: str | None = None
    os: str | None = None
    device: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "DeviceInfo":
        data = data or {}
        return cls(
            ip_address=data.get("ip_address"),
            user_agent=data.get("user_agent"),
            browser=data.get("browser"),
            os=data.get("os"),
            device=data.get("device"),
        )


@dataclass
class Session:
    """Session entity.

    Attributes:
        id: Unique identifier (UUID string).
        user_id: Owning user.
        expires_at: Hard expiry of the session.
        device_info: Advisory device description.
        ip_address: Client IP at creation.
        user_agent: Client User-Agent at creation.
        is_active: False once revoked.
        last_activity_at: Last authenticated request seen on the session.
        revoked_at: When the session was revoked.
        revoked_by: Who revoked it (user id or "system").
        revocation_reason: Why it was revoked.
        created_at: When the session was opened.
    """

    id: str
    user_id: str
    expires_at: datetime
    created_at: datetime
    device_info: DeviceInfo = field(default_factory=DeviceInfo)
    ip_address: str | None = None
    user_agent: str | None = None
    is_active: bool = True
    last_activity_at: datetime | None = None
    revoked_at: datetime | None = None
    revoked_by: str | None = None
    revocation_reason: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def is_idle(self, now: datetime, idle_timeout: timedelta) -> bool:
        last_seen = self.last_activity_at or self.created_at
        return now - last_seen > idle_timeout

    def is_usable(self, now: datetime) -> bool:
        """Active and not past its hard expiry."""
        return self.is_active and not self.is_expired(now)
