"""HTTP middleware package."""

from authforge.infrastructure.api.middleware.rate_limit_middleware import (
    RateLimitMiddleware,
    classify_endpoint,
)
from authforge.infrastructure.api.middleware.rate_limit_storage import (
    RateLimitDecision,
    RateLimitStorage,
)

__all__ = [
    "RateLimitDecision",
    "RateLimitMiddleware",
    "RateLimitStorage",
    "classify_endpoint",
]
