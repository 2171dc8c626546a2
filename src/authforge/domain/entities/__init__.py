"""Domain entities for AuthForge.

Entities are pure Python dataclasses that represent core authentication
concepts. They have no dependencies on infrastructure or external frameworks.
"""

from authforge.domain.entities.auth_results import (
    AccessTokenClaims,
    AuthResult,
    ChallengeRequestResult,
    LoginResult,
    MfaEnrollment,
    TokenPair,
)
from authforge.domain.entities.password_history import PasswordHistoryEntry
from authforge.domain.entities.refresh_token import RefreshToken
from authforge.domain.entities.session import DeviceInfo, Session

__all__ = [
    "AccessTokenClaims",
    "AuthResult",
    "ChallengeRequestResult",
    "DeviceInfo",
    "LoginResult",
    "MfaEnrollment",
    "PasswordHistoryEntry",
    "RefreshToken",
    "Session",
    "TokenPair",
]
