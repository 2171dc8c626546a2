"""SQLAlchemy models for AuthForge tables.

All models inherit from the Base class defined in database.py and are
automatically created on application startup in development mode.
"""

from authforge.infrastructure.persistence.models.mfa_recovery_code import MfaRecoveryCodeModel
from authforge.infrastructure.persistence.models.password_history import PasswordHistoryModel
from authforge.infrastructure.persistence.models.refresh_token import RefreshTokenModel
from authforge.infrastructure.persistence.models.session import SessionModel
from authforge.infrastructure.persistence.models.tenant_membership import TenantMembershipModel
from authforge.infrastructure.persistence.models.user import UserModel

__all__ = [
    "MfaRecoveryCodeModel",
    "PasswordHistoryModel",
    "RefreshTokenModel",
    "SessionModel",
    "TenantMembershipModel",
    "UserModel",
]
