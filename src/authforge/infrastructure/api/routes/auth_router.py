"""Authentication API routes.

Provides endpoints for registration, login, token refresh, sessions,
password management, account recovery, email verification and MFA.
Domain errors raised by the services are rendered by the AuthError
exception handler registered in the app factory.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from authforge.core.config import Settings
from authforge.domain.entities.auth_results import TokenPair
from authforge.domain.entities.session import Session
from authforge.infrastructure.api.dependencies import (
    AuthenticatedUser,
    AuthServiceDep,
    DeviceInfoDep,
    get_app_settings,
)
from authforge.infrastructure.api.schemas import (
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
    VerifyEmailRequest,
)
from authforge.infrastructure.persistence.models import UserModel

router = APIRouter()

SettingsDep = Annotated[Settings, Depends(get_app_settings)]

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    423: {"model": ErrorResponse},
}


def _auth_response(user: UserModel, tokens: TokenPair, password_expired: bool = False) -> dict:
    return {
        "token": tokens.access_token,
        "refresh_token": tokens.refresh_token,
        "token_type": tokens.token_type,
        "expires_in": tokens.expires_in,
        "session_id": tokens.session_id,
        "user": UserResponse.model_validate(user),
        "password_expired": password_expired,
    }


def _session_response(session: Session, current_session_id: str) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        ip_address=session.ip_address,
        user_agent=session.user_agent,
        device_info={k: str(v) for k, v in session.device_info.to_dict().items()},
        created_at=session.created_at,
        last_activity_at=session.last_activity_at,
        expires_at=session.expires_at,
        is_current=session.id == current_session_id,
    )


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=RegisterResponse,
    responses=ERROR_RESPONSES,
)
async def register(
    request: RegisterRequest,
    auth_service: AuthServiceDep,
    device_info: DeviceInfoDep,
    settings: SettingsDep,
) -> RegisterResponse:
    """Register a new account and sign it in."""
    result = await auth_service.register(
        email=request.email,
        password=request.password,
        profile={"first_name": request.first_name, "last_name": request.last_name},
        device_info=device_info,
    )
    return RegisterResponse(
        **_auth_response(result.user, result.tokens),
        verification_token=result.verification_token if settings.debug_tokens_enabled else None,
    )


@router.post(
    "/login",
    response_model=AuthResponse | MfaRequiredResponse,
    responses=ERROR_RESPONSES,
)
async def login(
    request: LoginRequest,
    auth_service: AuthServiceDep,
    device_info: DeviceInfoDep,
) -> AuthResponse | MfaRequiredResponse:
    """Authenticate with email and password.

    Accounts with MFA enabled receive a ``temp_token`` to complete at
    ``/mfa/challenge`` instead of final tokens.
    """
    result = await auth_service.login(request.email, request.password, device_info)
    if result.requires_mfa:
        return MfaRequiredResponse(
            temp_token=result.temp_token, password_expired=result.password_expired
        )
    return AuthResponse(**_auth_response(result.user, result.tokens, result.password_expired))


@router.post("/mfa/challenge", response_model=AuthResponse, responses=ERROR_RESPONSES)
async def mfa_challenge(
    request: MfaChallengeRequest,
    auth_service: AuthServiceDep,
    device_info: DeviceInfoDep,
) -> AuthResponse:
    """Complete a login with a TOTP or recovery code."""
    result = await auth_service.complete_mfa_login(request.temp_token, request.code, device_info)
    return AuthResponse(**_auth_response(result.user, result.tokens))


@router.post("/refresh", response_model=TokenRefreshResponse, responses=ERROR_RESPONSES)
async def refresh_token(
    request: RefreshRequest,
    auth_service: AuthServiceDep,
    device_info: DeviceInfoDep,
) -> TokenRefreshResponse:
    """Exchange a refresh token for a new token pair.

    The presented refresh token is revoked. Presenting it again revokes the
    whole session.
    """
    tokens = await auth_service.refresh(request.refresh_token, device_info)
    return TokenRefreshResponse(
        token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        expires_in=tokens.expires_in,
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(current_user: AuthenticatedUser, auth_service: AuthServiceDep) -> MessageResponse:
    """Revoke the current session."""
    await auth_service.logout(current_user.session_id, current_user.user_id)
    return MessageResponse(message="Logged out successfully")


@router.post("/logout-all", response_model=LogoutAllResponse)
async def logout_all(
    current_user: AuthenticatedUser, auth_service: AuthServiceDep
) -> LogoutAllResponse:
    """Revoke every session of the current user, this one included."""
    revoked = await auth_service.logout_everywhere(current_user.user_id)
    return LogoutAllResponse(message="Logged out from all devices", tokens_revoked=revoked)


@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions(
    current_user: AuthenticatedUser, auth_service: AuthServiceDep
) -> SessionListResponse:
    sessions = await auth_service.list_sessions(current_user.user_id)
    return SessionListResponse(
        sessions=[_session_response(s, current_user.session_id) for s in sessions],
        total=len(sessions),
    )


@router.post(
    "/sessions/{session_id}/revoke",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
)
async def revoke_session(
    session_id: str, current_user: AuthenticatedUser, auth_service: AuthServiceDep
) -> MessageResponse:
    """Revoke one of the current user's sessions."""
    await auth_service.revoke_session(session_id, current_user.user_id)
    return MessageResponse(message="Session revoked")


@router.get("/session-status", response_model=SessionStatusResponse)
async def session_status(
    current_user: AuthenticatedUser, auth_service: AuthServiceDep
) -> SessionStatusResponse:
    remaining = await auth_service.session_service.remaining_seconds(current_user.session_id)
    return SessionStatusResponse(
        session_id=current_user.session_id,
        is_valid=remaining > 0,
        remaining_seconds=remaining,
    )


@router.post("/change-password", response_model=MessageResponse, responses=ERROR_RESPONSES)
async def change_password(
    request: ChangePasswordRequest,
    current_user: AuthenticatedUser,
    auth_service: AuthServiceDep,
) -> MessageResponse:
    """Change the password. Every session, this one included, is signed out."""
    await auth_service.change_password(
        current_user.user_id, request.current_password, request.new_password
    )
    return MessageResponse(message="Password changed. Please sign in again.")


@router.post("/forgot-password", response_model=ChallengeResponse)
async def forgot_password(
    request: ForgotPasswordRequest, auth_service: AuthServiceDep
) -> ChallengeResponse:
    """Request a password reset email. The answer never reveals whether the account exists."""
    result = await auth_service.forgot_password(request.email)
    return ChallengeResponse(
        success=result.success, message=result.message, debug_token=result.debug_token
    )


@router.post("/reset-password", response_model=MessageResponse, responses=ERROR_RESPONSES)
async def reset_password(
    request: ResetPasswordRequest, auth_service: AuthServiceDep
) -> MessageResponse:
    await auth_service.reset_password(request.token, request.new_password)
    return MessageResponse(message="Password has been reset. Please sign in again.")


@router.post("/request-account-recovery", response_model=ChallengeResponse)
async def request_account_recovery(
    request: AccountRecoveryRequest, auth_service: AuthServiceDep
) -> ChallengeResponse:
    """Request an account recovery email. The answer never reveals whether the account exists."""
    result = await auth_service.request_account_recovery(request.email)
    return ChallengeResponse(
        success=result.success, message=result.message, debug_token=result.debug_token
    )


@router.post(
    "/complete-account-recovery", response_model=MessageResponse, responses=ERROR_RESPONSES
)
async def complete_account_recovery(
    request: CompleteAccountRecoveryRequest, auth_service: AuthServiceDep
) -> MessageResponse:
    await auth_service.complete_account_recovery(
        request.token, request.new_password, request.mfa_code
    )
    return MessageResponse(message="Account recovered. Please sign in again.")


@router.post("/verify-email", response_model=MessageResponse, responses=ERROR_RESPONSES)
async def verify_email(request: VerifyEmailRequest, auth_service: AuthServiceDep) -> MessageResponse:
    await auth_service.verify_email(request.token)
    return MessageResponse(message="Email address verified")


@router.post("/resend-verification", response_model=ChallengeResponse)
async def resend_verification(
    current_user: AuthenticatedUser, auth_service: AuthServiceDep
) -> ChallengeResponse:
    result = await auth_service.request_email_verification(current_user.user_id)
    return ChallengeResponse(
        success=result.success, message=result.message, debug_token=result.debug_token
    )


@router.post("/mfa/enroll", response_model=MfaEnrollResponse, responses=ERROR_RESPONSES)
async def mfa_enroll(current_user: AuthenticatedUser, auth_service: AuthServiceDep) -> MfaEnrollResponse:
    """Start TOTP enrollment and return the secret for the authenticator app."""
    enrollment = await auth_service.enroll_mfa(current_user.user_id)
    return MfaEnrollResponse(
        secret=enrollment.secret, provisioning_uri=enrollment.provisioning_uri
    )


@router.post("/mfa/verify", response_model=MfaRecoveryCodesResponse, responses=ERROR_RESPONSES)
async def mfa_verify(
    request: MfaCodeRequest, current_user: AuthenticatedUser, auth_service: AuthServiceDep
) -> MfaRecoveryCodesResponse:
    """Confirm enrollment with a TOTP code and enable MFA."""
    codes = await auth_service.confirm_mfa(current_user.user_id, request.code)
    return MfaRecoveryCodesResponse(
        message="Multi-factor authentication enabled", recovery_codes=codes
    )


@router.post("/mfa/disable", response_model=MessageResponse, responses=ERROR_RESPONSES)
async def mfa_disable(
    request: MfaCodeRequest, current_user: AuthenticatedUser, auth_service: AuthServiceDep
) -> MessageResponse:
    await auth_service.disable_mfa(current_user.user_id, request.code)
    return MessageResponse(message="Multi-factor authentication disabled")


@router.get("/me", response_model=UserResponse)
async def me(current_user: AuthenticatedUser, auth_service: AuthServiceDep) -> UserResponse:
    """Return the current user's profile."""
    user = await auth_service.get_user(current_user.user_id)
    return UserResponse.model_validate(user)
