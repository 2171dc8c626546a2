"""Pydantic schemas for authentication endpoints."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    """Request body for account registration."""

    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=1, description="User's password")
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)


class LoginRequest(BaseModel):
    """Request body for password login."""

    email: str = Field(..., min_length=1, max_length=255, description="User's email address")
    password: str = Field(..., min_length=1, description="User's password")


class MfaChallengeRequest(BaseModel):
    """Second step of a login for accounts with MFA enabled."""

    temp_token: str = Field(..., min_length=1, description="Token returned by /login")
    code: str = Field(..., min_length=1, max_length=32, description="TOTP or recovery code")


class RefreshRequest(BaseModel):
    """Request body for token refresh."""

    refresh_token: str = Field(..., min_length=1, description="Refresh token")


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr = Field(..., description="Email address of the account")


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1, description="Password reset token")
    new_password: str = Field(..., min_length=1)


class AccountRecoveryRequest(BaseModel):
    email: EmailStr = Field(..., description="Email address of the account")


class CompleteAccountRecoveryRequest(BaseModel):
    token: str = Field(..., min_length=1, description="Account recovery token")
    new_password: str = Field(..., min_length=1)
    mfa_code: str | None = Field(
        None, max_length=32, description="TOTP or recovery code, required when MFA is enabled"
    )


class VerifyEmailRequest(BaseModel):
    token: str = Field(..., min_length=1, description="Email verification token")


class MfaCodeRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=32, description="TOTP or recovery code")


class UserResponse(BaseModel):
    """User information in auth responses."""

    id: str = Field(..., description="User ID")
    email: str = Field(..., description="User's email address")
    role: str = Field(..., description="User's role name")
    is_active: bool = Field(..., description="Whether the user is active")
    email_verified: bool = Field(..., description="Whether the email is confirmed")
    mfa_enabled: bool = Field(..., description="Whether MFA is enabled")
    first_name: str | None = None
    last_name: str | None = None
    created_at: datetime = Field(..., description="When the user was created")
    last_login: datetime | None = Field(None, description="Last successful login")

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Response for successful authentication (login/register/MFA challenge)."""

    token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field("bearer", description="Token type")
    expires_in: int = Field(..., description="Access token expiration time in seconds")
    session_id: str = Field(..., description="Session the tokens are bound to")
    user: UserResponse = Field(..., description="User information")
    password_expired: bool = Field(False, description="Whether the password should be changed")


class RegisterResponse(AuthResponse):
    verification_token: str | None = Field(
        None, description="Email verification token (only outside production)"
    )


class MfaRequiredResponse(BaseModel):
    """Response for a correct password on an account with MFA enabled."""

    requires_mfa: bool = Field(True, description="Always true")
    temp_token: str = Field(..., description="Short-lived token for /mfa/challenge")
    password_expired: bool = False


class TokenRefreshResponse(BaseModel):
    """Response for token refresh."""

    token: str = Field(..., description="New JWT access token")
    refresh_token: str = Field(..., description="New JWT refresh token")
    token_type: str = Field("bearer", description="Token type")
    expires_in: int = Field(..., description="Access token expiration time in seconds")


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ChallengeResponse(MessageResponse):
    """Uniform answer to forgot-password and recovery requests."""

    debug_token: str | None = Field(
        None, description="Challenge token, only echoed outside production"
    )


class SessionResponse(BaseModel):
    id: str
    ip_address: str | None = None
    user_agent: str | None = None
    device_info: dict[str, str] = Field(default_factory=dict)
    created_at: datetime
    last_activity_at: datetime | None = None
    expires_at: datetime
    is_current: bool = False


class SessionListResponse(BaseModel):
    sessions: list[SessionResponse]
    total: int


class SessionStatusResponse(BaseModel):
    session_id: str
    is_valid: bool
    remaining_seconds: int


class LogoutAllResponse(MessageResponse):
    tokens_revoked: int


class MfaEnrollResponse(BaseModel):
    secret: str = Field(..., description="Base32 TOTP secret")
    provisioning_uri: str = Field(..., description="otpauth:// URI for authenticator apps")


class MfaRecoveryCodesResponse(MessageResponse):
    recovery_codes: list[str] = Field(..., description="Single-use codes, shown once")


class ValidationErrorDetail(BaseModel):
    """Detail for a single validation error."""

    field: str = Field(..., description="Field name that failed validation")
    message: str = Field(..., description="Human-readable error message")
    code: str | None = Field(None, description="Machine-readable error code")


class ErrorResponse(BaseModel):
    """Body of every authentication error response."""

    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: list[ValidationErrorDetail] | None = None
