from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select

from property_api.db.models.tenancy import BackgroundCheckStatus, Tenant
from .base import BaseRepository


class TenantRepository(BaseRepository):
    """Repository for the tenant variant payload."""

    async def get_tenant(self, tenant_id: UUID) -> Optional[Tenant]:
        stmt = select(Tenant).where(Tenant.id == tenant_id)
        return await self.scalar_one_or_none(stmt)

    async def get_by_user_id(self, user_id: UUID) -> Optional[Tenant]:
        stmt = select(Tenant).where(Tenant.user_id == user_id)
        return await self.scalar_one_or_none(stmt)

    async def create_tenant(self, *, user_id: UUID, unit_id: UUID, **profile: Any) -> Tenant:
        tenant = Tenant(
            user_id=user_id,
            unit_id=unit_id,
            background_check_status=BackgroundCheckStatus.PENDING,
            **profile,
        )
        return await self.persist(tenant)
