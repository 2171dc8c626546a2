"""Authentication infrastructure components.

This module provides password hashing, JWT token services, and the TOTP
primitives used by the MFA flows.
"""

from authforge.infrastructure.auth.jwt_service import (
    InvalidTokenError,
    JWTError,
    JWTService,
    TokenExpiredError,
)
from authforge.infrastructure.auth.password_hasher import (
    DUMMY_PASSWORD_HASH,
    hash_password,
    needs_rehash,
    verify_password,
)
from authforge.infrastructure.auth.totp import (
    current_totp,
    generate_recovery_codes,
    generate_totp_secret,
    get_provisioning_uri,
    hash_recovery_code,
    verify_totp,
)

__all__ = [
    "DUMMY_PASSWORD_HASH",
    "InvalidTokenError",
    "JWTError",
    "JWTService",
    "TokenExpiredError",
    "current_totp",
    "generate_recovery_codes",
    "generate_totp_secret",
    "get_provisioning_uri",
    "hash_password",
    "hash_recovery_code",
    "needs_rehash",
    "verify_password",
    "verify_totp",
]
