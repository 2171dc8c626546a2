"""API Schemas for request/response validation."""

from authforge.infrastructure.api.schemas.auth_schemas import (
    AccountRecoveryRequest,
    AuthResponse,
    ChallengeResponse,
    ChangePasswordRequest,
    CompleteAccountRecoveryRequest,
    ErrorResponse,
    ForgotPasswordRequest,
    LoginRequest,
    LogoutAllResponse,
    MessageResponse,
    MfaChallengeRequest,
    MfaCodeRequest,
    MfaEnrollResponse,
    MfaRecoveryCodesResponse,
    MfaRequiredResponse,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    SessionListResponse,
    SessionResponse,
    SessionStatusResponse,
    TokenRefreshResponse,
    UserResponse,
    ValidationErrorDetail,
    VerifyEmailRequest,
)

__all__ = [
    "AccountRecoveryRequest",
    "AuthResponse",
    "ChallengeResponse",
    "ChangePasswordRequest",
    "CompleteAccountRecoveryRequest",
    "ErrorResponse",
    "ForgotPasswordRequest",
    "LoginRequest",
    "LogoutAllResponse",
    "MessageResponse",
    "MfaChallengeRequest",
    "MfaCodeRequest",
    "MfaEnrollResponse",
    "MfaRecoveryCodesResponse",
    "MfaRequiredResponse",
    "RefreshRequest",
    "RegisterRequest",
    "RegisterResponse",
    "ResetPasswordRequest",
    "SessionListResponse",
    "SessionResponse",
    "SessionStatusResponse",
    "TokenRefreshResponse",
    "UserResponse",
    "ValidationErrorDetail",
    "VerifyEmailRequest",
]
