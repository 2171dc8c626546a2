"""Value objects returned by the authentication flows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from authforge.infrastructure.persistence.models import UserModel


@dataclass(frozen=True)
class AccessTokenClaims:
    """Verified contents of an access token."""

    user_id: str
    email: str
    role: str
    session_id: str
    tenants: list[str]
    tenant_id: str | None
    token_id: str
    issued_at: int
    expires_at: int

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> AccessTokenClaims:
        return cls(
            user_id=payload["sub"],
            email=payload["email"],
            role=payload["role"],
            session_id=payload["sid"],
            tenants=list(payload.get("tenants") or []),
            tenant_id=payload.get("tenant_id"),
            token_id=payload.get("jti", ""),
            issued_at=payload["iat"],
            expires_at=payload["exp"],
        )


@dataclass(frozen=True)
class TokenPair:
    """An access token and the refresh token minted alongside it."""

    access_token: str
    refresh_token: str
    session_id: str
    family: str
    expires_in: int
    refresh_expires_at: datetime
    token_type: str = "bearer"


@dataclass
class LoginResult:
    """Outcome of a password login.

    Either ``tokens`` is set, or ``requires_mfa`` is True and ``temp_token``
    carries the MFA challenge.
    """

    user: UserModel
    tokens: TokenPair | None = None
    requires_mfa: bool = False
    temp_token: str | None = None
    password_expired: bool = False


@dataclass
class AuthResult:
    """Outcome of a registration."""

    user: UserModel
    tokens: TokenPair
    verification_token: str


@dataclass(frozen=True)
class ChallengeRequestResult:
    """Uniform answer to forgot-password and account-recovery requests.

    ``debug_token`` is only populated when debug tokens are enabled and the
    account exists; callers must drop it before responding in production.
    """

    success: bool = True
    message: str = "If an account exists for this email, instructions have been sent."
    debug_token: str | None = None


@dataclass(frozen=True)
class MfaEnrollment:
    """Secret and provisioning URI handed to the user during MFA setup."""

    secret: str
    provisioning_uri: str

