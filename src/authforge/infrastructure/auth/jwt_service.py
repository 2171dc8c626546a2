"""JWT token service.

Signs and decodes the three structured credentials AuthForge hands out:
short-lived access tokens, refresh tokens, and MFA challenge tokens. Each
carries a ``type`` discriminator so one can never stand in for another.
"""

import uuid
from datetime import datetime, timedelta
from typing import Any

import jwt

from authforge.core.clock import Clock, utc_now
from authforge.core.config import Settings, get_settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"
MFA_CHALLENGE_TOKEN_TYPE = "mfa_challenge"


class JWTError(Exception):
    """Base exception for JWT-related errors."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token is malformed, badly signed, or of the wrong type."""

    pass


class JWTService:
    """Service for creating and validating JWT tokens."""

    def __init__(self, settings: Settings | None = None, clock: Clock | None = None) -> None:
        """Initialize the JWT service.

        Args:
            settings: Settings holding the signing key, algorithm and lifetimes.
            clock: Time source for ``iat``/``exp``. Defaults to the wall clock.
        """
        self._settings = settings or get_settings()
        self._clock = clock or utc_now

    @property
    def access_token_ttl(self) -> timedelta:
        return timedelta(minutes=self._settings.access_token_expire_minutes)

    @property
    def refresh_token_ttl(self) -> timedelta:
        return timedelta(days=self._settings.refresh_token_expire_days)

    @property
    def mfa_challenge_ttl(self) -> timedelta:
        return timedelta(minutes=self._settings.mfa_challenge_expire_minutes)

    def _encode(self, claims: dict[str, Any], token_type: str, ttl: timedelta) -> tuple[str, datetime]:
        now = self._clock()
        expire = now + ttl
        payload = {
            "iss": self._settings.jwt_issuer,
            "iat": now,
            "exp": expire,
            "type": token_type,
            **claims,
        }
        token = jwt.encode(
            payload, self._settings.secret_key, algorithm=self._settings.jwt_algorithm
        )
        return token, expire

    def create_access_token(
        self,
        user_id: str,
        email: str,
        role: str,
        session_id: str,
        tenants: list[str] | None = None,
    ) -> tuple[str, datetime]:
        """Create an access token.

        Args:
            user_id: The user's unique identifier.
            email: The user's email address.
            role: The user's role name.
            session_id: The session the token is bound to.
            tenants: Tenant ids the user is a member of; the first is the default.

        Returns:
            Tuple of (encoded JWT access token, expiry).
        """
        tenants = list(tenants or [])
        claims = {
            "sub": user_id,
            "jti": str(uuid.uuid4()),
            "email": email,
            "role": role,
            "sid": session_id,
            "tenants": tenants,
            "tenant_id": tenants[0] if tenants else None,
        }
        return self._encode(claims, ACCESS_TOKEN_TYPE, self.access_token_ttl)

    def create_refresh_token(
        self,
        user_id: str,
        session_id: str,
        token_id: str | None = None,
    ) -> tuple[str, str, datetime]:
        """Create a refresh token.

        Args:
            user_id: The user's unique identifier.
            session_id: The session the token is bound to.
            token_id: Explicit ``jti``. Generated when omitted.

        Returns:
            Tuple of (encoded JWT refresh token, token ID for storage, expiry).
        """
        token_id = token_id or str(uuid.uuid4())
        claims = {"sub": user_id, "jti": token_id, "sid": session_id}
        token, expire = self._encode(claims, REFRESH_TOKEN_TYPE, self.refresh_token_ttl)
        return token, token_id, expire

    def create_mfa_challenge_token(self, user_id: str, session_id: str) -> str:
        """Create the short-lived token that stands between password and MFA code."""
        claims = {"sub": user_id, "jti": str(uuid.uuid4()), "sid": session_id}
        token, _ = self._encode(claims, MFA_CHALLENGE_TOKEN_TYPE, self.mfa_challenge_ttl)
        return token

    def decode_token(self, token: str) -> dict[str, Any]:
        """Decode and validate a JWT token.

        Expiry is checked against the service clock rather than PyJWT's
        wall clock so an injected clock governs every time comparison.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is invalid.
        """
        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key,
                algorithms=[self._settings.jwt_algorithm],
                issuer=self._settings.jwt_issuer,
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": ["exp", "iat", "sub", "type"],
                },
            )
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError("Invalid token") from e

        if payload["exp"] <= self._clock().timestamp():
            raise TokenExpiredError("Token has expired")
        return payload

    def _validate_type(self, token: str, expected: str) -> dict[str, Any]:
        payload = self.decode_token(token)
        if payload.get("type") != expected:
            raise InvalidTokenError(f"Expected a {expected} token")
        return payload

    def validate_access_token(self, token: str) -> dict[str, Any]:
        """Validate that a token is an access token and decode it."""
        return self._validate_type(token, ACCESS_TOKEN_TYPE)

    def validate_refresh_token(self, token: str) -> dict[str, Any]:
        """Validate that a token is a refresh token and decode it."""
        payload = self._validate_type(token, REFRESH_TOKEN_TYPE)
        if "jti" not in payload or "sid" not in payload:
            raise InvalidTokenError("Refresh token missing required claims")
        return payload

    def validate_mfa_challenge_token(self, token: str) -> dict[str, Any]:
        """Validate that a token is an MFA challenge token and decode it."""
        return self._validate_type(token, MFA_CHALLENGE_TOKEN_TYPE)

    def get_expires_in(self) -> int:
        """Access token lifetime in seconds."""
        return int(self.access_token_ttl.total_seconds())
