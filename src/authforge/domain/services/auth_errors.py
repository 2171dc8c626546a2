"""Error taxonomy of the authentication core.

Every error carries a machine-readable ``code``, the ``public_message`` that
may cross the API boundary, and an HTTP ``status_code``. Security-sensitive
errors share generic public messages so callers cannot tell, for example,
an expired token from a forged one. Internal detail belongs in the log
record, never in the message.
"""

from typing import Any

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"
INVALID_TOKEN_MESSAGE = "Invalid or expired token"


class AuthError(Exception):
    """Base class for authentication failures."""

    code: str = "auth_error"
    public_message: str = "Authentication failed"
    status_code: int = 401

    def __init__(
        self,
        message: str | None = None,
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        self.public_message = message or self.public_message
        self.details = details or []
        super().__init__(self.public_message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.code, "message": self.public_message}
        if self.details:
            body["details"] = self.details
        return body


class InvalidCredentialsError(AuthError):
    """Wrong email or password. Indistinguishable from an unknown account."""

    code = "invalid_credentials"
    public_message = INVALID_CREDENTIALS_MESSAGE
    status_code = 401


class AccountInactiveError(InvalidCredentialsError):
    """Account is disabled. Surfaces exactly like invalid credentials."""


class AccountLockedError(AuthError):
    """Too many consecutive failed logins."""

    code = "account_locked"
    public_message = "Account is temporarily locked due to too many failed login attempts"
    status_code = 423


class PasswordExpiredError(AuthError):
    """Password is older than the configured maximum age."""

    code = "password_expired"
    public_message = "Password has expired and must be reset"
    status_code = 403


class TokenInvalidError(AuthError):
    """Malformed, forged, wrong type, or unknown token."""

    code = "invalid_token"
    public_message = INVALID_TOKEN_MESSAGE
    status_code = 401


class TokenExpiredError(TokenInvalidError):
    """Token past its expiry. Same public face as an invalid token."""


class TokenRevokedError(TokenInvalidError):
    """Token was revoked. Same public face as an invalid token."""


class ReplayDetectedError(TokenRevokedError):
    """A revoked refresh token was presented again; its family is now revoked."""


class PasswordPolicyError(AuthError):
    """New password violates the password policy.

    ``details`` lists each violated rule, which is safe to show the user.
    """

    code = "password_policy_violation"
    public_message = "Password does not meet requirements"
    status_code = 400


class InvalidInputError(AuthError):
    """Malformed request input such as an unparseable email address."""

    code = "validation_error"
    public_message = "Invalid input"
    status_code = 400


class PasswordReusedError(AuthError):
    """New password matches one of the recently used passwords."""

    code = "password_reused"
    public_message = "Password was used recently. Choose a different password"
    status_code = 409


class MfaRequiredError(AuthError):
    """A second factor is required but was not supplied."""

    code = "mfa_required"
    public_message = "Multi-factor authentication code required"
    status_code = 401


class MfaInvalidError(AuthError):
    """The supplied second factor was wrong."""

    code = "mfa_invalid"
    public_message = "Invalid multi-factor authentication code"
    status_code = 401


class MfaNotEnrolledError(AuthError):
    code = "mfa_not_enrolled"
    public_message = "Multi-factor authentication is not set up"
    status_code = 400


class ChallengeInvalidError(AuthError):
    """Reset, recovery or verification token is unknown, spent, or expired."""

    code = "invalid_challenge"
    public_message = INVALID_TOKEN_MESSAGE
    status_code = 400


class EmailAlreadyRegisteredError(AuthError):
    code = "email_already_registered"
    public_message = "An account with this email already exists"
    status_code = 409


class SessionNotFoundError(AuthError):
    """Session does not exist or belongs to another user."""

    code = "session_not_found"
    public_message = "Session not found"
    status_code = 404
