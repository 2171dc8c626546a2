"""Unit tests for rate limit middleware.

These tests verify per-peer, per-endpoint-class limiting, the 429 response
shape, skipped paths and the rate limit headers.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from authforge.infrastructure.api.middleware.rate_limit_middleware import (
    RateLimitMiddleware,
    classify_endpoint,
)
from authforge.infrastructure.api.middleware.rate_limit_storage import RateLimitStorage


def create_test_app(settings, storage=None) -> FastAPI:
    """Create a test FastAPI app with rate limit middleware."""
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, settings=settings, storage=storage or RateLimitStorage())

    @app.post("/api/v1/auth/login")
    async def login():
        return {"message": "login"}

    @app.get("/api/v1/auth/me")
    async def me():
        return {"message": "me"}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


@pytest.fixture
def limited_settings(settings_factory):
    return settings_factory(
        rate_limit_enabled=True,
        rate_limit_login=(2, 60),
        rate_limit_default=(5, 60),
    )


def test_rate_limit_headers_present(limited_settings):
    """Verify rate limit headers are added to the response."""
    client = TestClient(create_test_app(limited_settings))

    response = client.post("/api/v1/auth/login")

    assert response.status_code == 200
    assert response.headers["X-RateLimit-Limit"] == "2"
    assert response.headers["X-RateLimit-Remaining"] == "1"
    assert "X-RateLimit-Reset" in response.headers


def test_rate_limit_exceeded(limited_settings):
    """Verify 429 is returned when the class limit is exceeded."""
    client = TestClient(create_test_app(limited_settings))

    for _ in range(2):
        assert client.post("/api/v1/auth/login").status_code == 200

    response = client.post("/api/v1/auth/login")
    assert response.status_code == 429
    assert response.json()["error"] == "rate_limited"
    assert "message" in response.json()
    # One token refills every 30 seconds
    assert response.headers["Retry-After"] == "30"
    assert response.headers["X-RateLimit-Remaining"] == "0"


def test_classes_have_separate_buckets(limited_settings):
    """Exhausting the login bucket leaves other endpoints alone."""
    client = TestClient(create_test_app(limited_settings))

    for _ in range(3):
        client.post("/api/v1/auth/login")

    response = client.get("/api/v1/auth/me")
    assert response.status_code == 200
    assert response.headers["X-RateLimit-Limit"] == "5"


def test_clients_are_limited_separately(limited_settings):
    """Buckets are keyed on the connecting peer address."""
    storage = RateLimitStorage()
    first = TestClient(create_test_app(limited_settings, storage), client=("203.0.113.1", 50000))
    second = TestClient(create_test_app(limited_settings, storage), client=("203.0.113.2", 50000))

    for _ in range(2):
        first.post("/api/v1/auth/login")

    assert first.post("/api/v1/auth/login").status_code == 429
    assert second.post("/api/v1/auth/login").status_code == 200


def test_forwarded_header_does_not_reset_the_bucket(limited_settings):
    """A different X-Forwarded-For on every request still hits the same limit."""
    client = TestClient(create_test_app(limited_settings))

    statuses = [
        client.post("/api/v1/auth/login", headers={"X-Forwarded-For": f"10.0.0.{i}"}).status_code
        for i in range(5)
    ]

    assert statuses == [200, 200, 429, 429, 429]


def test_health_is_never_limited(settings_factory):
    settings = settings_factory(rate_limit_enabled=True, rate_limit_default=(1, 60))
    client = TestClient(create_test_app(settings))

    for _ in range(3):
        response = client.get("/health")
        assert response.status_code == 200
        assert "X-RateLimit-Limit" not in response.headers


def test_skip_ips(settings_factory):
    settings = settings_factory(
        rate_limit_enabled=True,
        rate_limit_login=(1, 60),
        rate_limit_skip_ips="198.51.100.7",
    )
    client = TestClient(create_test_app(settings), client=("198.51.100.7", 50000))

    for _ in range(3):
        response = client.post("/api/v1/auth/login")
        assert response.status_code == 200


def test_skip_ips_ignore_forwarded_header(settings_factory):
    settings = settings_factory(
        rate_limit_enabled=True,
        rate_limit_login=(1, 60),
        rate_limit_skip_ips="198.51.100.7",
    )
    client = TestClient(create_test_app(settings))

    responses = [
        client.post("/api/v1/auth/login", headers={"X-Forwarded-For": "198.51.100.7"})
        for _ in range(3)
    ]

    assert [r.status_code for r in responses] == [200, 429, 429]


def test_rate_limit_disabled(settings_factory):
    """Verify middleware does nothing when disabled."""
    settings = settings_factory(rate_limit_enabled=False, rate_limit_login=(1, 60))
    client = TestClient(create_test_app(settings))

    for _ in range(5):
        response = client.post("/api/v1/auth/login")
        assert response.status_code == 200
        assert "X-RateLimit-Limit" not in response.headers


@pytest.mark.parametrize(
    "path,expected",
    [
        ("/api/v1/auth/login", "login"),
        ("/api/v1/auth/mfa/challenge", "login"),
        ("/api/v1/auth/register", "register"),
        ("/api/v1/auth/forgot-password", "password_reset"),
        ("/api/v1/auth/reset-password/", "password_reset"),
        ("/api/v1/auth/complete-account-recovery", "password_reset"),
        ("/api/v1/auth/refresh", "refresh"),
        ("/api/v1/admin/users", "admin"),
        ("/api/v1/auth/me", "default"),
    ],
)
def test_classify_endpoint(path, expected):
    assert classify_endpoint(path) == expected
