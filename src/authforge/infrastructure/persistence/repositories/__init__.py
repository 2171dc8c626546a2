"""Persistence repositories for database operations."""

from authforge.infrastructure.persistence.repositories.mfa_recovery_code_repository import (
    MfaRecoveryCodeRepository,
)
from authforge.infrastructure.persistence.repositories.password_history_repository import (
    PasswordHistoryRepository,
)
from authforge.infrastructure.persistence.repositories.refresh_token_repository import (
    RefreshTokenRepository,
)
from authforge.infrastructure.persistence.repositories.session_repository import (
    SessionRepository,
)
from authforge.infrastructure.persistence.repositories.tenant_membership_repository import (
    TenantMembershipRepository,
)
from authforge.infrastructure.persistence.repositories.user_repository import (
    UserRepository,
)

__all__ = [
    "MfaRecoveryCodeRepository",
    "PasswordHistoryRepository",
    "RefreshTokenRepository",
    "SessionRepository",
    "TenantMembershipRepository",
    "UserRepository",
]
