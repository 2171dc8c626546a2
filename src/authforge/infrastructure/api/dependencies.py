"""FastAPI dependencies for authentication.

Builds the authentication service graph per request and provides the
current-user dependency that guards authenticated endpoints.
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from authforge.core.clock import Clock, utc_now
from authforge.core.config import Settings, get_settings
from authforge.core.logging import get_logger
from authforge.domain.entities.session import DeviceInfo
from authforge.domain.services.auth_errors import TokenRevokedError
from authforge.domain.services.auth_service import AuthService
from authforge.domain.services.mfa_service import MfaService
from authforge.domain.services.password_history_service import PasswordHistoryService
from authforge.domain.services.session_service import SessionService
from authforge.domain.services.token_service import TokenService
from authforge.infrastructure.auth.jwt_service import JWTService
from authforge.infrastructure.persistence.database import get_db_session
from authforge.infrastructure.persistence.repositories import (
    MfaRecoveryCodeRepository,
    PasswordHistoryRepository,
    RefreshTokenRepository,
    SessionRepository,
    TenantMembershipRepository,
    UserRepository,
)
from authforge.infrastructure.services.notification_service import NotificationService

logger = get_logger(__name__)


@dataclass
class CurrentUser:
    """Represents the current authenticated user context.

    Extracted from a valid access token whose session is still active.
    """

    user_id: str
    email: str
    role: str
    session_id: str
    tenants: list[str]
    tenant_id: str | None


def build_auth_service(
    session: AsyncSession,
    settings: Settings,
    clock: Clock | None = None,
    notification_service: NotificationService | None = None,
) -> AuthService:
    """Wire the authentication orchestrator and its collaborators.

    Args:
        session: Database session shared by every repository.
        settings: Application settings.
        clock: Time source. Defaults to the wall clock.
        notification_service: Email delivery. Built from settings when omitted.

    Returns:
        A ready AuthService.
    """
    clock = clock or utc_now
    user_repo = UserRepository(session)
    session_service = SessionService(session, SessionRepository(session), settings, clock)
    token_service = TokenService(
        session,
        RefreshTokenRepository(session),
        user_repo,
        TenantMembershipRepository(session),
        session_service,
        jwt_service=JWTService(settings, clock),
        settings=settings,
        clock=clock,
    )
    return AuthService(
        session=session,
        user_repo=user_repo,
        session_service=session_service,
        token_service=token_service,
        password_history=PasswordHistoryService(PasswordHistoryRepository(session), settings, clock),
        notification_service=notification_service or NotificationService(settings=settings),
        mfa_service=MfaService(MfaRecoveryCodeRepository(session), settings, clock),
        settings=settings,
        clock=clock,
    )


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


async def get_auth_service(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> AuthService:
    """Build the AuthService for the current request."""
    state = request.app.state
    return build_auth_service(
        session,
        get_app_settings(request),
        clock=getattr(state, "clock", None),
        notification_service=getattr(state, "notification_service", None),
    )


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


def get_device_info(request: Request) -> DeviceInfo:
    """Describe the calling client from its address and User-Agent.

    The address is the socket peer. Behind a reverse proxy, run uvicorn with
    ``--proxy-headers`` and ``--forwarded-allow-ips`` so it is the real client.
    """
    user_agent = request.headers.get("User-Agent")
    return DeviceInfo(
        ip_address=request.client.host if request.client else None,
        user_agent=user_agent[:500] if user_agent else None,
    )


DeviceInfoDep = Annotated[DeviceInfo, Depends(get_device_info)]


def _bearer_token(authorization: str | None) -> str:
    if authorization is None:
        logger.info("Authentication failed: missing Authorization header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        logger.info("Authentication failed: invalid Authorization header format")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return parts[1]


async def get_current_user(
    auth_service: AuthServiceDep,
    authorization: Annotated[str | None, Header()] = None,
) -> CurrentUser:
    """Extract and validate the current user from the Authorization header.

    Besides the signature and expiry of the access token, the session it is
    bound to must still be active, so logout and password changes take
    effect on outstanding access tokens.

    Raises:
        HTTPException: 401 if the header is missing or malformed.
        TokenInvalidError: If the token is invalid, expired, or its session
            has ended.
    """
    token = _bearer_token(authorization)
    claims = auth_service.token_service.verify_access_token(token)

    session_service = auth_service.session_service
    if not await session_service.is_session_valid(claims.user_id, claims.session_id):
        logger.info(
            "Authentication failed: session no longer active",
            user_id=claims.user_id,
            session_id=claims.session_id,
        )
        raise TokenRevokedError()

    await session_service.update_last_activity(claims.session_id)
    return CurrentUser(
        user_id=claims.user_id,
        email=claims.email,
        role=claims.role,
        session_id=claims.session_id,
        tenants=claims.tenants,
        tenant_id=claims.tenant_id,
    )


AuthenticatedUser = Annotated[CurrentUser, Depends(get_current_user)]
