from datetime import timedelta

import jwt  # PyJWT
import pytest

from authforge.core.clock import FrozenClock
from authforge.infrastructure.auth.jwt_service import (
    InvalidTokenError,
    JWTService,
    TokenExpiredError,
)


@pytest.fixture
def jwt_service(settings, clock):
    return JWTService(settings, clock)


class TestJWTService:

    def test_create_access_token_claims(self, jwt_service, settings):
        """Access tokens carry identity, session and tenant claims."""
        token, _ = jwt_service.create_access_token(
            user_id="user123",
            email="ana@acme.io",
            role="user",
            session_id="sess1",
            tenants=["t1", "t2"],
        )

        decoded = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"verify_exp": False, "verify_iat": False},
            issuer=settings.jwt_issuer,
        )

        assert decoded["sub"] == "user123"
        assert decoded["sid"] == "sess1"
        assert decoded["type"] == "access"
        assert decoded["tenants"] == ["t1", "t2"]
        assert decoded["tenant_id"] == "t1"
        assert "jti" in decoded

    def test_access_token_without_tenants(self, jwt_service):
        token, _ = jwt_service.create_access_token(
            user_id="u", email="u@acme.io", role="user", session_id="s"
        )
        payload = jwt_service.validate_access_token(token)
        assert payload["tenants"] == []
        assert payload["tenant_id"] is None

    def test_expiry_follows_injected_clock(self, jwt_service, clock: FrozenClock):
        token, expires_at = jwt_service.create_access_token(
            user_id="u", email="u@acme.io", role="user", session_id="s"
        )
        assert expires_at == clock() + timedelta(minutes=15)

        clock.advance(minutes=14)
        jwt_service.validate_access_token(token)

        clock.advance(minutes=2)
        with pytest.raises(TokenExpiredError):
            jwt_service.validate_access_token(token)

    def test_refresh_token_ids_are_unique(self, jwt_service):
        """Two refresh tokens minted at the same instant still differ."""
        token_a, jti_a, _ = jwt_service.create_refresh_token("u", "s")
        token_b, jti_b, _ = jwt_service.create_refresh_token("u", "s")
        assert token_a != token_b
        assert jti_a != jti_b

    def test_refresh_token_rejected_as_access_token(self, jwt_service):
        token, _, _ = jwt_service.create_refresh_token("u", "s")
        with pytest.raises(InvalidTokenError):
            jwt_service.validate_access_token(token)

    def test_access_token_rejected_as_refresh_token(self, jwt_service):
        token, _ = jwt_service.create_access_token(
            user_id="u", email="u@acme.io", role="user", session_id="s"
        )
        with pytest.raises(InvalidTokenError):
            jwt_service.validate_refresh_token(token)

    def test_mfa_challenge_token_type(self, jwt_service):
        token = jwt_service.create_mfa_challenge_token("u", "s")
        payload = jwt_service.validate_mfa_challenge_token(token)
        assert payload["sid"] == "s"
        with pytest.raises(InvalidTokenError):
            jwt_service.validate_access_token(token)

    def test_tampered_token(self, jwt_service):
        token, _ = jwt_service.create_access_token(
            user_id="u", email="u@acme.io", role="user", session_id="s"
        )
        with pytest.raises(InvalidTokenError):
            jwt_service.validate_access_token(token[:-2] + "xx")

    def test_token_signed_with_other_key(self, jwt_service, settings_factory, clock):
        other = JWTService(settings_factory(secret_key="another-secret-key-entirely"), clock)
        token, _ = other.create_access_token(
            user_id="u", email="u@acme.io", role="user", session_id="s"
        )
        with pytest.raises(InvalidTokenError):
            jwt_service.validate_access_token(token)

    def test_garbage_token(self, jwt_service):
        with pytest.raises(InvalidTokenError):
            jwt_service.decode_token("invalid.token.here")

    def test_get_expires_in(self, jwt_service):
        assert jwt_service.get_expires_in() == 15 * 60
