"""In-memory storage for rate limiting counters.

This module provides a thread-safe in-memory storage for tracking rate limit
tokens using a token bucket algorithm. A bucket holds ``limit`` tokens and
refills at ``limit / window_seconds`` tokens per second.
"""

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable


@dataclass
class TokenBucket:
    """Token bucket for a specific key (client IP and endpoint class)."""

    tokens: float
    last_updated: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of a consume attempt.

    Attributes:
        allowed: Whether the request may proceed.
        remaining: Whole tokens left after this request.
        retry_after: Seconds until the next token is available (when denied).
        reset_after: Seconds until the bucket is full again.
    """

    allowed: bool
    remaining: int
    retry_after: float
    reset_after: float


class RateLimitStorage:
    """Thread-safe in-memory storage for rate limit counters."""

    def __init__(
        self,
        cleanup_interval: int = 3600,
        time_func: Callable[[], float] = time.monotonic,
    ):
        """Initialize storage.

        Args:
            cleanup_interval: Interval in seconds to clean up stale entries.
            time_func: Monotonic time source in seconds.
        """
        self._storage: dict[str, TokenBucket] = {}
        self._lock = Lock()
        self._time = time_func
        self._last_cleanup = time_func()
        self._cleanup_interval = cleanup_interval

    def consume(self, key: str, limit: int, window_seconds: int) -> RateLimitDecision:
        """Attempt to consume a token for the given key.

        Args:
            key: The unique key for the bucket.
            limit: Requests allowed per window; also the bucket capacity.
            window_seconds: Window length in seconds.

        Returns:
            RateLimitDecision for this request.
        """
        now = self._time()
        capacity = float(max(limit, 1))
        rate_per_second = capacity / max(window_seconds, 1)

        with self._lock:
            if now - self._last_cleanup > self._cleanup_interval:
                self._cleanup_stale(now)

            bucket = self._storage.get(key)
            if bucket is None:
                bucket = TokenBucket(tokens=capacity, last_updated=now)
                self._storage[key] = bucket
            else:
                elapsed = now - bucket.last_updated
                bucket.tokens = min(capacity, bucket.tokens + elapsed * rate_per_second)
                bucket.last_updated = now

            if bucket.tokens >= 1.0:
                bucket.tokens -= 1.0
                return RateLimitDecision(
                    allowed=True,
                    remaining=int(bucket.tokens),
                    retry_after=0.0,
                    reset_after=(capacity - bucket.tokens) / rate_per_second,
                )

            return RateLimitDecision(
                allowed=False,
                remaining=0,
                retry_after=(1.0 - bucket.tokens) / rate_per_second,
                reset_after=(capacity - bucket.tokens) / rate_per_second,
            )

    def reset(self) -> None:
        with self._lock:
            self._storage.clear()

    def _cleanup_stale(self, now: float) -> None:
        """Remove entries that haven't been updated for a while."""
        stale_threshold = self._cleanup_interval
        to_delete = [k for k, v in self._storage.items() if now - v.last_updated > stale_threshold]
        for k in to_delete:
            del self._storage[k]
        self._last_cleanup = now
