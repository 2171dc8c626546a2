"""Domain services for AuthForge.

Services hold the business logic of the authentication core and own the
transaction boundaries; repositories below them only flush.
"""

from authforge.domain.services.auth_errors import (
    AccountInactiveError,
    AccountLockedError,
    AuthError,
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
    ReplayDetectedError,
    SessionNotFoundError,
    TokenExpiredError,
    TokenInvalidError,
    TokenRevokedError,
)
from authforge.domain.services.auth_service import AuthService
from authforge.domain.services.mfa_service import MfaService
from authforge.domain.services.password_history_service import PasswordHistoryService
from authforge.domain.services.password_validator import (
    PasswordValidationError,
    PasswordValidator,
    default_password_validator,
    validate_email,
)
from authforge.domain.services.session_service import SessionService
from authforge.domain.services.token_service import TokenService

__all__ = [
    "AccountInactiveError",
    "AccountLockedError",
    "AuthError",
    "AuthService",
    "ChallengeInvalidError",
    "EmailAlreadyRegisteredError",
    "InvalidCredentialsError",
    "InvalidInputError",
    "MfaInvalidError",
    "MfaNotEnrolledError",
    "MfaRequiredError",
    "MfaService",
    "PasswordExpiredError",
    "PasswordHistoryService",
    "PasswordPolicyError",
    "PasswordReusedError",
    "PasswordValidationError",
    "PasswordValidator",
    "ReplayDetectedError",
    "SessionNotFoundError",
    "SessionService",
    "TokenExpiredError",
    "TokenInvalidError",
    "TokenRevokedError",
    "TokenService",
    "default_password_validator",
    "validate_email",
]
