"""Authentication orchestrator.

Drives every account-level flow: registration, login with lockout and
optional MFA, refresh, logout, password change, forgot/reset password,
account recovery, email verification and MFA enrollment.

Each public operation is one unit of work: it commits on success and rolls
back on failure. Failed logins are the exception, their counter update is
committed before the error is raised.

Lock state per account::

    UNLOCKED --(N consecutive failures)--> LOCKED(until) --(time passes)--> UNLOCKED
"""

import hashlib
import secrets
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Any, AsyncIterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from authforge.core.clock import Clock, ensure_aware, utc_now
from authforge.core.config import Settings, get_settings
from authforge.core.logging import get_logger
from authforge.domain.entities.auth_results import (
    AuthResult,
    ChallengeRequestResult,
    LoginResult,
    MfaEnrollment,
    TokenPair,
)
from authforge.domain.entities.session import DeviceInfo, Session
from authforge.domain.services.auth_errors import (
    AccountInactiveError,
    AccountLockedError,
    ChallengeInvalidError,
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    InvalidInputError,
    MfaInvalidError,
    MfaNotEnrolledError,
    MfaRequiredError,
    PasswordExpiredError,
    PasswordPolicyError,
    PasswordReusedError,
    SessionNotFoundError,
    TokenInvalidError,
)
from authforge.domain.services.mfa_service import MfaService
from authforge.domain.services.password_history_service import PasswordHistoryService
from authforge.domain.services.password_validator import PasswordValidator, validate_email
from authforge.domain.services.session_service import SessionService
from authforge.domain.services.token_service import LOGOUT_REASON, TokenService
from authforge.infrastructure.auth.password_hasher import (
    DUMMY_PASSWORD_HASH,
    hash_password,
    needs_rehash,
    verify_password,
)
from authforge.infrastructure.persistence.models import UserModel
from authforge.infrastructure.persistence.repositories.user_repository import UserRepository
from authforge.infrastructure.services.notification_service import NotificationService

logger = get_logger(__name__)

DEFAULT_ROLE = "user"


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


class AuthService:
    """Orchestrates the account lifecycle over its collaborators."""

    def __init__(
        self,
        session: AsyncSession,
        user_repo: UserRepository,
        session_service: SessionService,
        token_service: TokenService,
        password_history: PasswordHistoryService,
        notification_service: NotificationService,
        mfa_service: MfaService,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the authentication service.

        Args:
            session: SQLAlchemy async session owning the transaction.
            user_repo: Credential store.
            session_service: Session registry.
            token_service: Token issuer and validator.
            password_history: Password history ledger.
            notification_service: Best-effort email delivery.
            mfa_service: Second-factor verifier.
            settings: Application settings.
            clock: Time source.
        """
        self.session = session
        self.user_repo = user_repo
        self.session_service = session_service
        self.token_service = token_service
        self.password_history = password_history
        self.notification_service = notification_service
        self.mfa_service = mfa_service
        self.settings = settings or get_settings()
        self.clock = clock or utc_now
        self.password_validator = PasswordValidator.from_settings(self.settings)

    @asynccontextmanager
    async def _unit_of_work(self) -> AsyncIterator[None]:
        try:
            yield
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    # Validation

    def _check_password_policy(self, password: str, field: str = "password") -> None:
        violations = self.password_validator.validate(password, field=field)
        if violations:
            raise PasswordPolicyError(details=[v.to_dict() for v in violations])

    def _check_email(self, email: str) -> None:
        violations = validate_email(email)
        if violations:
            raise InvalidInputError(
                "Invalid email address", details=[v.to_dict() for v in violations]
            )

    # Account state helpers

    def _is_locked(self, user: UserModel, now: datetime) -> bool:
        locked_until = ensure_aware(user.locked_until)
        return locked_until is not None and locked_until > now

    def _is_password_expired(self, user: UserModel, now: datetime) -> bool:
        max_age = self.settings.password_max_age_days
        if max_age is None:
            return False
        changed_at = ensure_aware(user.password_changed_at or user.created_at)
        return changed_at is not None and now - changed_at > timedelta(days=max_age)

    def _new_challenge(self, ttl: timedelta) -> tuple[str, str, datetime]:
        """Return (raw token, stored digest, expiry) for a single-use challenge."""
        raw = secrets.token_urlsafe(32)
        return raw, _digest(raw), self.clock() + ttl

    def _debug_token(self, raw: str | None) -> str | None:
        return raw if self.settings.debug_tokens_enabled else None

    async def _record_failed_attempt(self, user: UserModel, now: datetime) -> None:
        user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
        if user.failed_login_attempts >= self.settings.max_failed_login_attempts:
            user.locked_until = now + timedelta(minutes=self.settings.lockout_duration_minutes)
            logger.warning(
                "Account locked after repeated failures",
                user_id=user.id,
                failed_attempts=user.failed_login_attempts,
            )
        await self.user_repo.update(user)
        await self.session.commit()

    def _clear_lock(self, user: UserModel) -> None:
        user.failed_login_attempts = 0
        user.locked_until = None

    async def _ensure_not_reused(self, user: UserModel, new_password: str) -> None:
        if await self.password_history.is_password_in_history(user.id, new_password):
            logger.info("Password change rejected, password reused", user_id=user.id)
            raise PasswordReusedError()

    async def _store_new_password(self, user: UserModel, new_password: str, reason: str) -> int:
        """Set the password, append it to history, and revoke every token."""
        password_hash = hash_password(new_password)
        user.password_hash = password_hash
        user.password_changed_at = self.clock()
        await self.user_repo.update(user)
        await self.password_history.add_to_history(user.id, password_hash)
        return await self.token_service.revoke_all_user_tokens(user.id, reason)

    async def _get_user(self, user_id: str, for_update: bool = False) -> UserModel:
        user = await self.user_repo.get_by_id(user_id, for_update=for_update)
        if user is None or not user.is_active:
            raise InvalidCredentialsError()
        return user

    # Registration and login

    async def register(
        self,
        email: str,
        password: str,
        profile: dict[str, Any] | None = None,
        device_info: DeviceInfo | None = None,
    ) -> AuthResult:
        """Create an account and sign it in.

        Args:
            email: Email address; compared case-insensitively.
            password: Password in clear text.
            profile: Optional ``first_name``/``last_name``.
            device_info: Client description for the new session.

        Returns:
            The user, a token pair and the email verification token.

        Raises:
            InvalidInputError: If the email address is malformed.
            PasswordPolicyError: If the password violates the policy.
            EmailAlreadyRegisteredError: If the email is taken.
        """
        self._check_email(email)
        self._check_password_policy(password)
        profile = profile or {}

        async with self._unit_of_work():
            if await self.user_repo.email_exists(email):
                raise EmailAlreadyRegisteredError()

            now = self.clock()
            raw_verification, verification_digest, verification_expiry = self._new_challenge(
                timedelta(hours=self.settings.email_verification_expire_hours)
            )
            password_hash = hash_password(password)
            user = UserModel(
                id=str(uuid.uuid4()),
                email=email,
                password_hash=password_hash,
                role=DEFAULT_ROLE,
                is_active=True,
                first_name=profile.get("first_name"),
                last_name=profile.get("last_name"),
                email_verified=False,
                email_verification_token=verification_digest,
                email_verification_expiry=verification_expiry,
                failed_login_attempts=0,
                mfa_enabled=False,
                password_changed_at=now,
                last_login=now,
                created_at=now,
                updated_at=now,
            )
            try:
                await self.user_repo.create(user)
            except IntegrityError as e:
                raise EmailAlreadyRegisteredError() from e

            await self.password_history.add_to_history(user.id, password_hash)
            session = await self.session_service.create(user.id, device_info)
            tokens = await self.token_service.issue_token_pair(user, session.id, device_info)

        logger.info("User registered", user_id=user.id, session_id=session.id)
        await self.notification_service.send_email_verification(user.email, raw_verification)
        return AuthResult(user=user, tokens=tokens, verification_token=raw_verification)

    async def login(
        self, email: str, password: str, device_info: DeviceInfo | None = None
    ) -> LoginResult:
        """Authenticate with email and password.

        The lock is checked before the password so a locked account answers
        the same way whether or not the password is right.

        Raises:
            AccountLockedError: If the account is locked.
            InvalidCredentialsError: If the email is unknown, the password is
                wrong, or the account is inactive.
            PasswordExpiredError: If the password is too old and expiry is
                enforced.
        """
        async with self._unit_of_work():
            now = self.clock()
            user = await self.user_repo.get_by_email(email, for_update=True)
            if user is None:
                verify_password(password, DUMMY_PASSWORD_HASH)
                logger.info("Login failed", reason="unknown_email")
                raise InvalidCredentialsError()

            if self._is_locked(user, now):
                logger.info("Login failed", reason="account_locked", user_id=user.id)
                raise AccountLockedError()

            if user.locked_until is not None:
                # Lock has elapsed; start counting afresh.
                self._clear_lock(user)

            if not verify_password(password, user.password_hash):
                await self._record_failed_attempt(user, now)
                logger.info(
                    "Login failed",
                    reason="wrong_password",
                    user_id=user.id,
                    failed_attempts=user.failed_login_attempts,
                )
                raise InvalidCredentialsError()

            if not user.is_active:
                logger.info("Login failed", reason="inactive", user_id=user.id)
                raise AccountInactiveError()

            self._clear_lock(user)
            user.last_login = now
            if needs_rehash(user.password_hash):
                user.password_hash = hash_password(password)

            password_expired = self._is_password_expired(user, now)
            if password_expired and self.settings.enforce_password_expiry:
                await self.user_repo.update(user)
                await self.session.commit()
                logger.info("Login failed", reason="password_expired", user_id=user.id)
                raise PasswordExpiredError()

            await self.user_repo.update(user)
            session = await self.session_service.create(user.id, device_info)

            if user.mfa_enabled:
                temp_token = self.token_service.issue_mfa_challenge(user, session.id)
                result = LoginResult(
                    user=user,
                    requires_mfa=True,
                    temp_token=temp_token,
                    password_expired=password_expired,
                )
            else:
                tokens = await self.token_service.issue_token_pair(user, session.id, device_info)
                result = LoginResult(user=user, tokens=tokens, password_expired=password_expired)

        logger.info(
            "Login succeeded",
            user_id=user.id,
            session_id=session.id,
            requires_mfa=result.requires_mfa,
        )
        return result

    async def complete_mfa_login(
        self, temp_token: str, code: str, device_info: DeviceInfo | None = None
    ) -> LoginResult:
        """Finish a login that stopped at the MFA step.

        Accepts a TOTP code or an unused recovery code. Wrong codes count
        toward the account lockout like wrong passwords.

        Raises:
            TokenInvalidError: If the challenge is invalid, expired or spent.
            AccountLockedError: If the account is locked.
            MfaInvalidError: If the code is wrong.
        """
        user_id, session_id = self.token_service.verify_mfa_challenge(temp_token)

        async with self._unit_of_work():
            now = self.clock()
            user = await self.user_repo.get_by_id(user_id, for_update=True)
            if user is None or not user.is_active or not user.mfa_enabled:
                raise TokenInvalidError()
            if self._is_locked(user, now):
                raise AccountLockedError()

            session = await self.session_service.get(session_id)
            if (
                session is None
                or session.user_id != user.id
                or not session.is_usable(now)
                or await self.token_service.session_has_tokens(session_id)
            ):
                logger.info("MFA challenge rejected", user_id=user.id, session_id=session_id)
                raise TokenInvalidError()

            if not await self.mfa_service.verify(user, code):
                await self._record_failed_attempt(user, now)
                logger.info("MFA login failed", user_id=user.id)
                raise MfaInvalidError()

            self._clear_lock(user)
            await self.user_repo.update(user)
            tokens = await self.token_service.issue_token_pair(user, session_id, device_info)
            await self.session_service.touch(session_id)

        logger.info("MFA login succeeded", user_id=user.id, session_id=session_id)
        return LoginResult(user=user, tokens=tokens)

    async def refresh(self, refresh_token: str, device_info: DeviceInfo | None = None) -> TokenPair:
        """Rotate a refresh token into a new pair."""
        async with self._unit_of_work():
            return await self.token_service.rotate(refresh_token, device_info)

    # Sessions

    async def logout(self, session_id: str, user_id: str) -> None:
        """Revoke the caller's session and its refresh tokens."""
        async with self._unit_of_work():
            await self.token_service.revoke_session(session_id, user_id, LOGOUT_REASON)
        logger.info("User logged out", user_id=user_id, session_id=session_id)

    async def revoke_session(self, session_id: str, user_id: str) -> None:
        """Revoke one of the caller's own sessions.

        Raises:
            SessionNotFoundError: If the session does not exist or belongs to
                someone else.
        """
        async with self._unit_of_work():
            session = await self.session_service.get(session_id)
            if session is None or session.user_id != user_id:
                raise SessionNotFoundError()
            await self.token_service.revoke_session(session_id, user_id, "Session revoked by user")

    async def list_sessions(self, user_id: str) -> list[Session]:
        return await self.session_service.find_active_by_user(user_id)

    async def logout_everywhere(self, user_id: str) -> int:
        """Revoke every session and refresh token of the user.

        Returns:
            Number of refresh tokens revoked.
        """
        async with self._unit_of_work():
            return await self.token_service.revoke_all_user_tokens(
                user_id, "Logout from all devices"
            )

    # Password management

    async def change_password(self, user_id: str, old_password: str, new_password: str) -> None:
        """Change the password of a signed-in user and sign out everywhere.

        Raises:
            PasswordPolicyError: If the new password violates the policy.
            InvalidCredentialsError: If the old password is wrong.
            PasswordReusedError: If the new password was used recently.
        """
        self._check_password_policy(new_password, field="new_password")

        async with self._unit_of_work():
            user = await self._get_user(user_id, for_update=True)
            if not verify_password(old_password, user.password_hash):
                logger.info("Password change failed", reason="wrong_password", user_id=user_id)
                raise InvalidCredentialsError()
            await self._ensure_not_reused(user, new_password)
            revoked = await self._store_new_password(user, new_password, "Password changed")

        logger.info("Password changed", user_id=user_id, tokens_revoked=revoked)
        await self.notification_service.send_password_changed(user.email)

    async def forgot_password(self, email: str) -> ChallengeRequestResult:
        """Issue a password reset token if the account exists.

        The answer is the same whether or not the email is known.
        """
        raw, digest, expiry = self._new_challenge(
            timedelta(hours=self.settings.reset_token_expire_hours)
        )
        async with self._unit_of_work():
            user = await self.user_repo.get_by_email(email, for_update=True)
            if user is not None and user.is_active:
                user.reset_token = digest
                user.reset_token_expiry = expiry
                await self.user_repo.update(user)

        if user is None or not user.is_active:
            logger.info("Password reset requested for unknown or inactive account")
            return ChallengeRequestResult()

        logger.info("Password reset requested", user_id=user.id)
        await self.notification_service.send_password_reset(user.email, raw)
        return ChallengeRequestResult(debug_token=self._debug_token(raw))

    async def reset_password(self, token: str, new_password: str) -> None:
        """Set a new password with a reset token. The token works once.

        Also unlocks the account.

        Raises:
            PasswordPolicyError: If the new password violates the policy.
            ChallengeInvalidError: If the token is unknown, spent or expired.
            PasswordReusedError: If the new password was used recently.
        """
        self._check_password_policy(new_password, field="new_password")
        digest = _digest(token)

        async with self._unit_of_work():
            now = self.clock()
            user = await self.user_repo.get_by_reset_token(digest, for_update=True)
            if user is None:
                raise ChallengeInvalidError()
            expiry = ensure_aware(user.reset_token_expiry)
            if expiry is None or expiry <= now:
                logger.info("Password reset failed", reason="token_expired", user_id=user.id)
                raise ChallengeInvalidError()

            await self._ensure_not_reused(user, new_password)
            if not await self.user_repo.consume_reset_token(user.id, digest, now):
                logger.info("Password reset failed", reason="token_consumed", user_id=user.id)
                raise ChallengeInvalidError()

            user.reset_token = None
            user.reset_token_expiry = None
            self._clear_lock(user)
            revoked = await self._store_new_password(user, new_password, "Password reset")

        logger.info("Password reset", user_id=user.id, tokens_revoked=revoked)
        await self.notification_service.send_password_reset_success(user.email)

    # Account recovery

    async def request_account_recovery(self, email: str) -> ChallengeRequestResult:
        """Issue an account recovery token, replacing any outstanding one.

        The answer is the same whether or not the email is known.
        """
        raw, digest, expiry = self._new_challenge(
            timedelta(hours=self.settings.recovery_token_expire_hours)
        )
        async with self._unit_of_work():
            user = await self.user_repo.get_by_email(email, for_update=True)
            account_exists = user is not None and user.is_active
            if account_exists:
                user.account_recovery_token = digest
                user.account_recovery_token_expiry = expiry
                await self.user_repo.update(user)

        logger.info(
            "Account recovery requested",
            user_id=user.id if account_exists else None,
        )
        await self.notification_service.send_recovery_notification(
            user.email if account_exists else self.user_repo.normalize_email(email),
            raw if account_exists else None,
            account_exists,
        )
        return ChallengeRequestResult(
            debug_token=self._debug_token(raw) if account_exists else None
        )

    async def complete_account_recovery(
        self, token: str, new_password: str, mfa_code: str | None = None
    ) -> None:
        """Set a new password with a recovery token.

        When the account has MFA enabled a valid TOTP or recovery code is
        required as well, even with a valid token.

        Raises:
            PasswordPolicyError: If the new password violates the policy.
            ChallengeInvalidError: If the token is unknown, spent or expired.
            MfaRequiredError: If MFA is enabled and no code was given.
            MfaInvalidError: If the MFA code is wrong.
            PasswordReusedError: If the new password was used recently.
        """
        self._check_password_policy(new_password, field="new_password")
        digest = _digest(token)

        async with self._unit_of_work():
            now = self.clock()
            user = await self.user_repo.get_by_recovery_token(digest, for_update=True)
            if user is None:
                raise ChallengeInvalidError()
            expiry = ensure_aware(user.account_recovery_token_expiry)
            if expiry is None or expiry <= now:
                logger.info("Account recovery failed", reason="token_expired", user_id=user.id)
                raise ChallengeInvalidError()

            if user.mfa_enabled and self.settings.require_mfa_for_recovery:
                if not mfa_code:
                    logger.info("Account recovery failed", reason="mfa_missing", user_id=user.id)
                    raise MfaRequiredError()
                if not await self.mfa_service.verify(user, mfa_code):
                    logger.info("Account recovery failed", reason="mfa_invalid", user_id=user.id)
                    raise MfaInvalidError()

            await self._ensure_not_reused(user, new_password)
            if not await self.user_repo.consume_recovery_token(user.id, digest, now):
                raise ChallengeInvalidError()

            user.account_recovery_token = None
            user.account_recovery_token_expiry = None
            self._clear_lock(user)
            revoked = await self._store_new_password(user, new_password, "Account recovery")

        logger.info("Account recovered", user_id=user.id, tokens_revoked=revoked)
        await self.notification_service.send_account_recovery_success(user.email)

    # Email verification

    async def request_email_verification(self, user_id: str) -> ChallengeRequestResult:
        """Issue a fresh email verification token for an unverified user."""
        async with self._unit_of_work():
            user = await self._get_user(user_id, for_update=True)
            if user.email_verified:
                return ChallengeRequestResult(message="Email address is already verified.")
            raw, digest, expiry = self._new_challenge(
                timedelta(hours=self.settings.email_verification_expire_hours)
            )
            user.email_verification_token = digest
            user.email_verification_expiry = expiry
            await self.user_repo.update(user)

        await self.notification_service.send_email_verification(user.email, raw)
        return ChallengeRequestResult(
            message="Verification email sent.", debug_token=self._debug_token(raw)
        )

    async def verify_email(self, token: str) -> UserModel:
        """Mark an email address verified.

        Raises:
            ChallengeInvalidError: If the token is unknown, spent or expired.
        """
        digest = _digest(token)
        async with self._unit_of_work():
            user = await self.user_repo.get_by_verification_token(digest)
            if user is None or not await self.user_repo.consume_verification_token(
                user.id, digest, self.clock()
            ):
                raise ChallengeInvalidError()
        await self.user_repo.refresh(user)
        logger.info("Email verified", user_id=user.id)
        return user

    # MFA enrollment

    async def enroll_mfa(self, user_id: str) -> MfaEnrollment:
        """Start TOTP enrollment. MFA is enabled once a code is confirmed.

        Raises:
            InvalidInputError: If MFA is already enabled.
        """
        async with self._unit_of_work():
            user = await self._get_user(user_id, for_update=True)
            if user.mfa_enabled:
                raise InvalidInputError("Multi-factor authentication is already enabled")
            enrollment = self.mfa_service.begin_enrollment(user)
            await self.user_repo.update(user)
        logger.info("MFA enrollment started", user_id=user_id)
        return enrollment

    async def confirm_mfa(self, user_id: str, code: str) -> list[str]:
        """Enable MFA after checking a code from the enrolled secret.

        Returns:
            Fresh single-use recovery codes, shown to the user once.

        Raises:
            MfaNotEnrolledError: If enrollment was not started.
            MfaInvalidError: If the code is wrong.
        """
        async with self._unit_of_work():
            user = await self._get_user(user_id, for_update=True)
            if not user.mfa_secret:
                raise MfaNotEnrolledError()
            if not self.mfa_service.verify_totp(user, code):
                raise MfaInvalidError()
            user.mfa_enabled = True
            await self.user_repo.update(user)
            codes = await self.mfa_service.regenerate_recovery_codes(user.id)
        logger.info("MFA enabled", user_id=user_id)
        return codes

    async def disable_mfa(self, user_id: str, code: str) -> None:
        """Turn MFA off after checking a TOTP or recovery code.

        Raises:
            MfaNotEnrolledError: If MFA is not enabled.
            MfaInvalidError: If the code is wrong.
        """
        async with self._unit_of_work():
            user = await self._get_user(user_id, for_update=True)
            if not user.mfa_enabled:
                raise MfaNotEnrolledError()
            if not await self.mfa_service.verify(user, code):
                raise MfaInvalidError()
            await self.mfa_service.disable(user)
            await self.user_repo.update(user)
        logger.info("MFA disabled", user_id=user_id)

    async def get_user(self, user_id: str) -> UserModel:
        return await self._get_user(user_id)
