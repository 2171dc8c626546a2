"""Rate limiting middleware for AuthForge.

Limits requests per client IP and endpoint class. Credential endpoints
(login, registration, password reset) get tight windows so brute force and
enumeration attempts are rejected before any authentication work runs.
"""

import math

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse
from starlette.types import ASGIApp

from authforge.core.config import Settings, get_settings
from authforge.core.logging import get_logger
from authforge.infrastructure.api.middleware.rate_limit_storage import RateLimitStorage

logger = get_logger(__name__)

SKIPPED_PATHS = frozenset({"/health", "/ready", "/live"})

PASSWORD_RESET_SUFFIXES = (
    "/forgot-password",
    "/reset-password",
    "/request-account-recovery",
    "/complete-account-recovery",
)


def classify_endpoint(path: str) -> str:
    """Map a request path to its rate limit class."""
    path = path.rstrip("/")
    if path.endswith("/auth/login") or path.endswith("/auth/mfa/challenge"):
        return "login"
    if path.endswith("/auth/register"):
        return "register"
    if path.endswith(PASSWORD_RESET_SUFFIXES):
        return "password_reset"
    if path.endswith("/auth/refresh"):
        return "refresh"
    if "/admin" in path:
        return "admin"
    return "default"


def limit_for(settings: Settings, endpoint_class: str) -> tuple[int, int]:
    """Return the (limit, window_seconds) pair configured for a class."""
    return getattr(settings, f"rate_limit_{endpoint_class}")


def client_ip(request: Request) -> str:
    # Proxy headers are resolved by uvicorn (forwarded_allow_ips), never here.
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce rate limits on API requests."""

    def __init__(
        self,
        app: ASGIApp,
        settings: Settings | None = None,
        storage: RateLimitStorage | None = None,
    ) -> None:
        super().__init__(app)
        self.settings = settings or get_settings()
        self.storage = storage or RateLimitStorage()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Process the request and enforce rate limits.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint to call.

        Returns:
            The response from the application or a 429 error.
        """
        settings = self.settings
        path = request.url.path
        if not settings.rate_limit_enabled or path in SKIPPED_PATHS:
            return await call_next(request)

        ip = client_ip(request)
        if ip in settings.rate_limit_skip_ips:
            return await call_next(request)

        endpoint_class = classify_endpoint(path)
        limit, window = limit_for(settings, endpoint_class)
        key = f"{endpoint_class}:{ip}"
        decision = self.storage.consume(key, limit, window)

        if not decision.allowed:
            retry_after = max(1, math.ceil(decision.retry_after))
            logger.warning(
                "Rate limit exceeded",
                client_ip=ip,
                endpoint_class=endpoint_class,
                path=path,
                limit=limit,
                window_seconds=window,
                retry_after=retry_after,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limited",
                    "message": f"Too many requests. Try again in {retry_after} seconds.",
                },
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(math.ceil(decision.reset_after)),
                },
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        response.headers["X-RateLimit-Reset"] = str(math.ceil(decision.reset_after))

        return response
