"""Repository resolving the tenants a user belongs to."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from authforge.infrastructure.persistence.models import TenantMembershipModel


class TenantMembershipRepository:
    """Repository for tenant membership database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_tenant_ids(self, user_id: str) -> list[str]:
        """Get the tenant IDs of a user, oldest membership first.

        The first entry is the user's default tenant.

        Args:
            user_id: The user's UUID.

        Returns:
            List of tenant IDs, empty if the user belongs to none.
        """
        result = await self._session.execute(
            select(TenantMembershipModel.tenant_id)
            .where(TenantMembershipModel.user_id == user_id)
            .order_by(TenantMembershipModel.created_at, TenantMembershipModel.id)
        )
        return list(result.scalars().all())

    async def add(
        self, user_id: str, tenant_id: str, role: str = "member", created_at: datetime | None = None
    ) -> TenantMembershipModel:
        """Add a user to a tenant."""
        model = TenantMembershipModel(user_id=user_id, tenant_id=tenant_id, role=role)
        if created_at is not None:
            model.created_at = created_at
        self._session.add(model)
        await self._session.flush()
        return model
