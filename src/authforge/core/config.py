"""Configuration management for AuthForge.

This module uses Pydantic Settings to load and validate configuration from
environment variables and .env files. Configuration is loaded once at
application startup, is frozen, and is handed to the services that need it.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SECRET_KEY = "change-me-in-production-use-openssl-rand-hex-32"


class Settings(BaseSettings):
    """Application configuration settings.

    Settings are loaded from environment variables (prefixed ``AUTHFORGE_``)
    and .env files. All configuration values are validated at startup and
    the instance is immutable afterwards.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="AUTHFORGE_",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Application Settings
    app_name: str = "AuthForge"
    app_version: str = "0.1.0"
    environment: Literal["development", "production", "testing"] = "development"
    debug: bool = False
    api_prefix: str = "/api/v1"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1
    # Peers whose X-Forwarded-For uvicorn trusts for the client address
    forwarded_allow_ips: str = "127.0.0.1"

    # Database Settings
    database_url: str = "sqlite+aiosqlite:///./af_data/authforge.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 3600
    db_echo: bool = False

    # Token Settings
    secret_key: str = Field(
        default=DEFAULT_SECRET_KEY,
        description="Secret key for JWT token signing",
    )
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "authforge"
    access_token_expire_minutes: int = Field(default=15, gt=0)
    refresh_token_expire_days: int = Field(default=7, gt=0)
    mfa_challenge_expire_minutes: int = Field(default=5, gt=0)
    refresh_reuse_grace_seconds: int = Field(
        default=0,
        ge=0,
        description="Window in which a just-rotated refresh token is rejected "
        "without revoking its family (0 disables the window)",
    )
    token_retention_days: int = Field(
        default=30,
        ge=0,
        description="How long revoked/expired tokens and sessions are kept before cleanup",
    )

    # Account Lockout Settings
    max_failed_login_attempts: int = Field(default=5, gt=0)
    lockout_duration_minutes: int = Field(default=30, gt=0)

    # Password Policy Settings
    password_min_length: int = Field(default=8, ge=1)
    password_require_uppercase: bool = True
    password_require_lowercase: bool = True
    password_require_digit: bool = True
    password_require_special: bool = True
    password_history_count: int = Field(default=5, ge=0)
    password_max_age_days: int | None = None
    enforce_password_expiry: bool = False

    # Challenge Token Settings
    reset_token_expire_hours: int = Field(default=1, gt=0)
    recovery_token_expire_hours: int = Field(default=1, gt=0)
    email_verification_expire_hours: int = Field(default=24, gt=0)

    # Session Settings
    session_expire_hours: int = Field(default=24, gt=0)
    session_idle_timeout_minutes: int = Field(default=30, gt=0)

    # MFA Settings
    mfa_issuer_name: str = "AuthForge"
    mfa_totp_window: int = Field(default=1, ge=0)
    mfa_recovery_code_count: int = Field(default=10, gt=0)
    require_mfa_for_recovery: bool = True

    # Echo challenge tokens (verification/reset/recovery) in API responses
    expose_debug_tokens: bool | None = None

    # Notification Settings
    email_provider: Literal["log", "smtp"] = "log"
    email_from_address: str = "no-reply@authforge.local"
    email_from_name: str = "AuthForge"
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    frontend_url: str = "http://localhost:3000"

    # CORS Settings
    cors_origins: list[str] = Field(default=["http://localhost:3000", "http://localhost:5173"])
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = Field(default=["*"])
    cors_allow_headers: list[str] = Field(default=["*"])

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Rate Limiting Settings: (limit, window in seconds) per endpoint class
    rate_limit_enabled: bool = False
    rate_limit_login: tuple[int, int] = (5, 900)
    rate_limit_register: tuple[int, int] = (3, 3600)
    rate_limit_password_reset: tuple[int, int] = (3, 3600)
    rate_limit_refresh: tuple[int, int] = (10, 60)
    rate_limit_default: tuple[int, int] = (100, 60)
    rate_limit_admin: tuple[int, int] = (20, 60)
    rate_limit_skip_ips: list[str] = Field(default_factory=list)

    @field_validator("cors_origins", "rate_limit_skip_ips", mode="before")
    @classmethod
    def parse_comma_separated(cls, v: str | list[str]) -> list[str]:
        """Parse a comma-separated string or list."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @model_validator(mode="after")
    def validate_production_secrets(self) -> "Settings":
        """Refuse to start in production with the placeholder signing key."""
        if self.environment == "production" and self.secret_key == DEFAULT_SECRET_KEY:
            raise ValueError(
                "AUTHFORGE_SECRET_KEY must be set to a strong random value in production"
            )
        return self

    @model_validator(mode="after")
    def validate_sqlite_workers(self) -> "Settings":
        """Validate that SQLite is not used with multiple workers."""
        if self.workers > 1 and self.database_url.startswith("sqlite"):
            raise ValueError(
                "SQLite does not support multiple worker processes. "
                f"Requested {self.workers} workers, but SQLite requires workers=1. "
                "Either use --workers 1 or switch to PostgreSQL."
            )
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"

    @property
    def debug_tokens_enabled(self) -> bool:
        """Whether challenge tokens may be echoed back in API responses.

        Never in production, whatever ``expose_debug_tokens`` says.
        """
        if self.is_production:
            return False
        if self.expose_debug_tokens is not None:
            return self.expose_debug_tokens
        return True

    @property
    def database_url_sync(self) -> str:
        """Get synchronous database URL for migrations."""
        url = self.database_url
        if url.startswith("sqlite+aiosqlite"):
            return url.replace("sqlite+aiosqlite", "sqlite")
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql")
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded once at startup; callers that need different values
    (tests, tooling) construct their own ``Settings`` and inject it.

    Returns:
        Settings: Cached application settings instance.
    """
    return Settings()
