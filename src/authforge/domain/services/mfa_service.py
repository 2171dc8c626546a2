"""MFA verifier.

Verifies a second factor for a user: either a TOTP code from an
authenticator app, or one of the user's single-use recovery codes.
"""

from authforge.core.clock import Clock, utc_now
from authforge.core.config import Settings, get_settings
from authforge.core.logging import get_logger
from authforge.domain.entities.auth_results import MfaEnrollment
from authforge.infrastructure.auth.totp import (
    generate_recovery_codes,
    generate_totp_secret,
    get_provisioning_uri,
    hash_recovery_code,
    verify_totp,
)
from authforge.infrastructure.persistence.models import UserModel
from authforge.infrastructure.persistence.repositories.mfa_recovery_code_repository import (
    MfaRecoveryCodeRepository,
)

logger = get_logger(__name__)

MFA_TYPE_TOTP = "totp"


class MfaService:
    """Second-factor enrollment and verification."""

    def __init__(
        self,
        recovery_code_repo: MfaRecoveryCodeRepository,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.recovery_code_repo = recovery_code_repo
        self.settings = settings or get_settings()
        self.clock = clock or utc_now

    def begin_enrollment(self, user: UserModel) -> MfaEnrollment:
        """Attach a fresh, not yet confirmed TOTP secret to the user.

        MFA stays disabled until a code generated from the secret is confirmed.
        """
        secret = generate_totp_secret()
        user.mfa_secret = secret
        user.mfa_type = MFA_TYPE_TOTP
        return MfaEnrollment(
            secret=secret,
            provisioning_uri=get_provisioning_uri(
                secret, user.email, self.settings.mfa_issuer_name
            ),
        )

    def verify_totp(self, user: UserModel, code: str | None) -> bool:
        if not user.mfa_secret or not code:
            return False
        return verify_totp(
            user.mfa_secret,
            code,
            window=self.settings.mfa_totp_window,
            for_time=self.clock(),
        )

    async def verify(self, user: UserModel, code: str | None) -> bool:
        """Accept a TOTP code, or spend a matching unused recovery code.

        Args:
            user: User whose factor is checked.
            code: Code as typed by the user.

        Returns:
            True if the code is a valid second factor.
        """
        if not code:
            return False
        if self.verify_totp(user, code):
            return True
        consumed = await self.recovery_code_repo.consume(
            user.id, hash_recovery_code(code), self.clock()
        )
        if consumed:
            logger.info("MFA recovery code used", user_id=user.id)
        return consumed

    async def regenerate_recovery_codes(self, user_id: str) -> list[str]:
        """Replace the user's recovery codes.

        Returns:
            The new codes in clear text. Only their digests are stored.
        """
        codes = generate_recovery_codes(self.settings.mfa_recovery_code_count)
        await self.recovery_code_repo.replace_for_user(
            user_id, [hash_recovery_code(code) for code in codes], self.clock()
        )
        return codes

    async def disable(self, user: UserModel) -> None:
        user.mfa_enabled = False
        user.mfa_secret = None
        user.mfa_type = None
        await self.recovery_code_repo.delete_for_user(user.id)
