"""Token issuer and validator.

Mints access/refresh token pairs, rotates refresh tokens, and detects
replay of refresh tokens that were already rotated away. Refresh tokens
minted by rotating one login share a family; presenting a revoked member
of a family revokes the whole family along with its session.
"""

import uuid
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from authforge.core.clock import Clock, utc_now
from authforge.core.config import Settings, get_settings
from authforge.core.logging import get_logger
from authforge.domain.entities.auth_results import AccessTokenClaims, TokenPair
from authforge.domain.entities.refresh_token import RefreshToken
from authforge.domain.entities.session import DeviceInfo
from authforge.domain.services.auth_errors import (
    ReplayDetectedError,
    TokenExpiredError,
    TokenInvalidError,
    TokenRevokedError,
)
from authforge.domain.services.session_service import SYSTEM_ACTOR, SessionService
from authforge.infrastructure.auth import jwt_service as jwt_errors
from authforge.infrastructure.auth.jwt_service import JWTService
from authforge.infrastructure.persistence.models import UserModel
from authforge.infrastructure.persistence.repositories.refresh_token_repository import (
    RefreshTokenRepository,
)
from authforge.infrastructure.persistence.repositories.tenant_membership_repository import (
    TenantMembershipRepository,
)
from authforge.infrastructure.persistence.repositories.user_repository import UserRepository

logger = get_logger(__name__)

ROTATION_REASON = "Token rotation"
REUSE_REASON = "Token reuse detected"
LOGOUT_REASON = "User logout"

# Revoking a single token for one of these reasons takes its family down too.
SUSPICIOUS_REASONS = frozenset({REUSE_REASON, "Suspicious activity", "Security breach"})


class TokenService:
    """Service issuing, verifying, rotating and revoking tokens.

    Methods flush and leave the commit to the caller. The one exception is
    replay detection: the family revocation is committed before the error
    is raised so that it survives the caller's rollback.
    """

    def __init__(
        self,
        session: AsyncSession,
        refresh_token_repo: RefreshTokenRepository,
        user_repo: UserRepository,
        tenant_repo: TenantMembershipRepository,
        session_service: SessionService,
        jwt_service: JWTService | None = None,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the token service.

        Args:
            session: SQLAlchemy async session.
            refresh_token_repo: Repository for refresh token rows.
            user_repo: Repository for users, used to re-read claims on rotation.
            tenant_repo: Resolves the tenants placed in access tokens.
            session_service: Session registry the tokens are bound to.
            jwt_service: Token codec. Built from ``settings`` when omitted.
            settings: Application settings.
            clock: Time source.
        """
        self.session = session
        self.refresh_token_repo = refresh_token_repo
        self.user_repo = user_repo
        self.tenant_repo = tenant_repo
        self.session_service = session_service
        self.settings = settings or get_settings()
        self.clock = clock or utc_now
        self.jwt_service = jwt_service or JWTService(self.settings, self.clock)

    async def issue_token_pair(
        self,
        user: UserModel,
        session_id: str,
        device_info: DeviceInfo | None = None,
        family: str | None = None,
    ) -> TokenPair:
        """Mint an access token and a stored refresh token for a session.

        Args:
            user: The authenticated user.
            session_id: Session the pair is bound to.
            device_info: Client description, logged only.
            family: Rotation family to join. A new family is started when omitted.

        Returns:
            The new token pair.
        """
        tenants = await self.tenant_repo.get_tenant_ids(user.id)
        access_token, _ = self.jwt_service.create_access_token(
            user_id=user.id,
            email=user.email,
            role=user.role,
            session_id=session_id,
            tenants=tenants,
        )
        refresh_token, token_id, refresh_expires_at = self.jwt_service.create_refresh_token(
            user_id=user.id, session_id=session_id
        )
        family = family or str(uuid.uuid4())
        await self.refresh_token_repo.create(
            RefreshToken(
                id=token_id,
                token_hash=self.refresh_token_repo.hash_token(refresh_token),
                user_id=user.id,
                session_id=session_id,
                family=family,
                expires_at=refresh_expires_at,
                created_at=self.clock(),
            )
        )
        logger.debug(
            "Token pair issued",
            user_id=user.id,
            session_id=session_id,
            family=family,
            ip_address=device_info.ip_address if device_info else None,
        )
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            session_id=session_id,
            family=family,
            expires_in=self.jwt_service.get_expires_in(),
            refresh_expires_at=refresh_expires_at,
        )

    def verify_access_token(self, token: str) -> AccessTokenClaims:
        """Check an access token cryptographically. Touches no storage.

        Raises:
            TokenExpiredError: If the token has expired.
            TokenInvalidError: If the token is malformed, forged or not an
                access token.
        """
        try:
            payload = self.jwt_service.validate_access_token(token)
        except jwt_errors.TokenExpiredError as e:
            raise TokenExpiredError() from e
        except jwt_errors.JWTError as e:
            logger.debug("Access token rejected", reason=str(e))
            raise TokenInvalidError() from e
        try:
            return AccessTokenClaims.from_payload(payload)
        except KeyError as e:
            raise TokenInvalidError() from e

    def _within_grace(self, stored: RefreshToken, now: datetime) -> bool:
        grace = self.settings.refresh_reuse_grace_seconds
        return (
            grace > 0
            and stored.revocation_reason == ROTATION_REASON
            and stored.revoked_at is not None
            and now - stored.revoked_at <= timedelta(seconds=grace)
        )

    async def _reject_revoked(self, stored: RefreshToken) -> None:
        """Raise for a revoked token, revoking its family unless inside the grace window."""
        now = self.clock()
        if self._within_grace(stored, now):
            logger.info(
                "Recently rotated refresh token presented within grace window",
                user_id=stored.user_id,
                family=stored.family,
            )
            raise TokenRevokedError()

        revoked = await self.refresh_token_repo.revoke_family(
            stored.family, SYSTEM_ACTOR, REUSE_REASON, now
        )
        await self.session_service.revoke(stored.session_id, SYSTEM_ACTOR, REUSE_REASON)
        await self.session.commit()
        logger.warning(
            "Refresh token reuse detected, family revoked",
            user_id=stored.user_id,
            session_id=stored.session_id,
            family=stored.family,
            tokens_revoked=revoked,
        )
        raise ReplayDetectedError()

    async def verify_refresh_token(self, token: str) -> RefreshToken:
        """Check a refresh token's signature, type, expiry and stored state.

        Returns:
            The stored refresh token.

        Raises:
            TokenExpiredError: If the token has expired.
            TokenInvalidError: If the token is malformed or unknown.
            ReplayDetectedError: If the token was already revoked; every token
                of its family is revoked as a side effect.
        """
        try:
            payload = self.jwt_service.validate_refresh_token(token)
        except jwt_errors.TokenExpiredError as e:
            raise TokenExpiredError() from e
        except jwt_errors.JWTError as e:
            logger.debug("Refresh token rejected", reason=str(e))
            raise TokenInvalidError() from e

        stored = await self.refresh_token_repo.get_by_hash(
            self.refresh_token_repo.hash_token(token)
        )
        if stored is None or stored.id != payload["jti"] or stored.user_id != payload["sub"]:
            logger.info("Refresh token not found in store", user_id=payload.get("sub"))
            raise TokenInvalidError()

        if stored.is_revoked:
            await self._reject_revoked(stored)

        if stored.is_expired(self.clock()):
            raise TokenExpiredError()
        return stored

    async def revoke_refresh_token(
        self, token_hash: str, user_id: str | None, reason: str
    ) -> bool:
        """Revoke one refresh token by digest.

        Suspicious reasons revoke the token's whole family as well.

        Returns:
            True if this call moved the token from live to revoked.
        """
        now = self.clock()
        revoked = await self.refresh_token_repo.revoke_if_active(token_hash, user_id, reason, now)
        if reason in SUSPICIOUS_REASONS:
            stored = await self.refresh_token_repo.get_by_hash(token_hash)
            if stored is not None:
                await self.refresh_token_repo.revoke_family(stored.family, user_id, reason, now)
        return revoked

    async def rotate(self, refresh_token: str, device_info: DeviceInfo | None = None) -> TokenPair:
        """Exchange a refresh token for a new pair in the same family and session.

        Raises:
            TokenInvalidError: If the token, its session, or its user is no
                longer usable.
            ReplayDetectedError: If the token was already rotated away, including
                when a concurrent rotation of the same token won the race.
        """
        stored = await self.verify_refresh_token(refresh_token)

        won = await self.revoke_refresh_token(stored.token_hash, stored.user_id, ROTATION_REASON)
        if not won:
            # A concurrent request rotated the same token first.
            current = await self.refresh_token_repo.get_by_hash(stored.token_hash)
            await self._reject_revoked(current or stored)

        session = await self.session_service.get(stored.session_id)
        if session is None or session.user_id != stored.user_id or not session.is_usable(self.clock()):
            logger.info(
                "Refresh rejected, session no longer active",
                user_id=stored.user_id,
                session_id=stored.session_id,
            )
            raise TokenRevokedError()

        user = await self.user_repo.get_by_id(stored.user_id)
        if user is None or not user.is_active:
            logger.info("Refresh rejected, user missing or inactive", user_id=stored.user_id)
            raise TokenRevokedError()

        pair = await self.issue_token_pair(
            user, stored.session_id, device_info=device_info, family=stored.family
        )
        await self.session_service.touch(stored.session_id)
        logger.info(
            "Refresh token rotated",
            user_id=user.id,
            session_id=stored.session_id,
            family=stored.family,
        )
        return pair

    async def revoke_session(self, session_id: str, user_id: str | None, reason: str) -> bool:
        """Revoke a session together with every refresh token bound to it.

        Returns:
            True if the session was active before this call.
        """
        now = self.clock()
        tokens = await self.refresh_token_repo.revoke_for_session(session_id, user_id, reason, now)
        revoked = await self.session_service.revoke(session_id, user_id, reason)
        logger.info(
            "Session tokens revoked", session_id=session_id, tokens_revoked=tokens, reason=reason
        )
        return revoked

    async def revoke_all_user_tokens(
        self, user_id: str, reason: str, revoked_by: str | None = None
    ) -> int:
        """Revoke every refresh token and every session of a user.

        Returns:
            Number of refresh tokens revoked.
        """
        tokens = await self.refresh_token_repo.revoke_all_for_user(
            user_id, revoked_by or user_id, reason, self.clock()
        )
        sessions = await self.session_service.revoke_all_user_sessions(
            user_id, reason, revoked_by=revoked_by
        )
        logger.info(
            "All user tokens revoked",
            user_id=user_id,
            tokens_revoked=tokens,
            sessions_revoked=sessions,
            reason=reason,
        )
        return tokens

    async def session_has_tokens(self, session_id: str) -> bool:
        return await self.refresh_token_repo.count_for_session(session_id) > 0

    async def list_user_tokens(self, user_id: str, include_revoked: bool = False) -> list[RefreshToken]:
        return await self.refresh_token_repo.list_for_user(user_id, include_revoked=include_revoked)

    async def cleanup_expired_tokens(self) -> int:
        """Delete expired tokens and revoked tokens past the retention window.

        Returns:
            Number of tokens deleted.
        """
        now = self.clock()
        cutoff = now - timedelta(days=self.settings.token_retention_days)
        deleted = await self.refresh_token_repo.delete_expired(now, cutoff)
        await self.session.commit()
        logger.info("Expired refresh tokens cleaned up", deleted=deleted)
        return deleted

    def issue_mfa_challenge(self, user: UserModel, session_id: str) -> str:
        """Mint the short-lived token that carries a login into the MFA step."""
        return self.jwt_service.create_mfa_challenge_token(user.id, session_id)

    def verify_mfa_challenge(self, token: str) -> tuple[str, str]:
        """Check an MFA challenge token.

        Returns:
            Tuple of (user ID, session ID).

        Raises:
            TokenExpiredError: If the challenge has expired.
            TokenInvalidError: If the token is not a valid challenge.
        """
        try:
            payload = self.jwt_service.validate_mfa_challenge_token(token)
        except jwt_errors.TokenExpiredError as e:
            raise TokenExpiredError() from e
        except jwt_errors.JWTError as e:
            raise TokenInvalidError() from e
        if "sid" not in payload:
            raise TokenInvalidError()
        return payload["sub"], payload["sid"]
