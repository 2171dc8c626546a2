import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from authforge.core.config import DEFAULT_SECRET_KEY, Settings, get_settings


def test_settings_defaults():
    """Test that settings load with correct defaults."""
    settings = Settings(_env_file=None)

    assert settings.app_name == "AuthForge"
    assert settings.environment == "development"
    assert settings.access_token_expire_minutes == 15
    assert settings.refresh_token_expire_days == 7
    assert settings.session_idle_timeout_minutes == 30
    assert settings.max_failed_login_attempts == 5
    assert settings.rate_limit_login == (5, 900)
    assert settings.is_development is True
    assert settings.is_production is False


def test_settings_env_override():
    """Test that environment variables override defaults."""
    with patch.dict(
        os.environ,
        {
            "AUTHFORGE_ENVIRONMENT": "testing",
            "AUTHFORGE_MAX_FAILED_LOGIN_ATTEMPTS": "7",
            "AUTHFORGE_RATE_LIMIT_LOGIN": "[10, 60]",
            "AUTHFORGE_RATE_LIMIT_SKIP_IPS": '["10.0.0.1", "10.0.0.2"]',
        },
    ):
        settings = Settings(_env_file=None)

    assert settings.is_testing is True
    assert settings.max_failed_login_attempts == 7
    assert settings.rate_limit_login == (10, 60)
    assert settings.rate_limit_skip_ips == ["10.0.0.1", "10.0.0.2"]


def test_settings_are_frozen():
    settings = Settings(_env_file=None)
    with pytest.raises(ValidationError):
        settings.max_failed_login_attempts = 1


def test_production_requires_secret_key():
    with pytest.raises(ValidationError, match="AUTHFORGE_SECRET_KEY"):
        Settings(_env_file=None, environment="production", secret_key=DEFAULT_SECRET_KEY)

    settings = Settings(_env_file=None, environment="production", secret_key="s" * 64)
    assert settings.is_production


def test_sqlite_rejects_multiple_workers():
    with pytest.raises(ValidationError, match="SQLite does not support multiple worker"):
        Settings(_env_file=None, workers=4, database_url="sqlite+aiosqlite:///./x.db")

    settings = Settings(
        _env_file=None, workers=4, database_url="postgresql+asyncpg://u:p@db/authforge"
    )
    assert settings.workers == 4


def test_non_positive_limits_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, access_token_expire_minutes=0)
    with pytest.raises(ValidationError):
        Settings(_env_file=None, max_failed_login_attempts=0)


def test_debug_tokens_follow_environment():
    assert Settings(_env_file=None).debug_tokens_enabled is True
    assert (
        Settings(_env_file=None, environment="production", secret_key="s" * 64).debug_tokens_enabled
        is False
    )
    assert Settings(_env_file=None, expose_debug_tokens=False).debug_tokens_enabled is False
    assert Settings(_env_file=None, expose_debug_tokens=True).debug_tokens_enabled is True

    # An explicit opt-in cannot turn them on in production
    production = Settings(
        _env_file=None, environment="production", secret_key="s" * 64, expose_debug_tokens=True
    )
    assert production.debug_tokens_enabled is False


def test_database_url_sync():
    assert (
        Settings(_env_file=None, database_url="sqlite+aiosqlite:///./a.db").database_url_sync
        == "sqlite:///./a.db"
    )
    assert (
        Settings(
            _env_file=None, database_url="postgresql+asyncpg://u:p@db/af"
        ).database_url_sync
        == "postgresql://u:p@db/af"
    )


def test_get_settings_is_cached():
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()
