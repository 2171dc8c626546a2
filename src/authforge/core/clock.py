"""Time source used by the services.

Services take a ``Clock`` so lockout windows, token expiry and session
timeouts can be exercised deterministically.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class FrozenClock:
    """Manually advanced clock.

    Example:
        clock = FrozenClock()
        clock.advance(minutes=31)
    """

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or utc_now()

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **delta: float) -> datetime:
        self.current = self.current + timedelta(**delta)
        return self.current
