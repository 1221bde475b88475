from __future__ import annotations

from datetime import datetime
from typing import List, NamedTuple, Optional
from uuid import UUID

from sqlalchemy import select

from property_api.db.models.payments import Payment, PaymentStatus, PaymentType
from property_api.db.models.property import Building, Unit
from property_api.db.models.tenancy import Tenant
from property_api.db.models.users import Owner
from .base import BaseRepository

SUCCESSFUL_STATUSES = (PaymentStatus.COMPLETED, PaymentStatus.CONFIRMED)
OUTSTANDING_STATUSES = (PaymentStatus.PENDING, PaymentStatus.FAILED)


class PaymentAccessChain(NamedTuple):
    """Result of the explicit payment -> tenant / unit -> building -> owner join."""

    payment_id: UUID
    tenant_user_id: UUID
    owner_user_id: UUID


class PaymentRepository(BaseRepository):
    """Repository for ledger rows."""

    async def get_payment(self, payment_id: UUID) -> Optional[Payment]:
        stmt = select(Payment).where(Payment.id == payment_id)
        return await self.scalar_one_or_none(stmt)

    async def get_for_update(self, payment_id: UUID) -> Optional[Payment]:
        """Load the row under a write lock and refresh any stale identity-map copy."""
        stmt = (
            select(Payment)
            .where(Payment.id == payment_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return await self.scalar_one_or_none(stmt)

    async def exists_reference(self, reference_number: str) -> bool:
        return await self.any_row(select(Payment.id).where(Payment.reference_number == reference_number))

    async def get_access_chain(self, payment_id: UUID) -> Optional[PaymentAccessChain]:
        stmt = (
            select(Payment.id, Tenant.user_id, Owner.user_id)
            .select_from(Payment)
            .join(Tenant, Tenant.id == Payment.tenant_id)
            .join(Unit, Unit.id == Payment.unit_id)
            .join(Building, Building.id == Unit.building_id)
            .join(Owner, Owner.id == Building.owner_id)
            .where(Payment.id == payment_id)
        )
        row = (await self.execute(stmt)).first()
        if row is None:
            return None
        return PaymentAccessChain(*row)

    async def list_for_tenant(self, tenant_id: UUID) -> List[Payment]:
        stmt = (
            select(Payment)
            .where(Payment.tenant_id == tenant_id)
            .order_by(Payment.payment_date.desc())
        )
        res = await self.scalars(stmt)
        return list(res)

    def _owned_by(self, owner_user_id: UUID):
        return (
            select(Payment)
            .join(Unit, Unit.id == Payment.unit_id)
            .join(Building, Building.id == Unit.building_id)
            .join(Owner, Owner.id == Building.owner_id)
            .where(Owner.user_id == owner_user_id)
        )

    async def list_for_owner_user(self, owner_user_id: UUID) -> List[Payment]:
        stmt = self._owned_by(owner_user_id).order_by(Payment.payment_date.desc())
        res = await self.scalars(stmt)
        return list(res)

    async def list_outstanding_for_owner_user(self, owner_user_id: UUID) -> List[Payment]:
        stmt = (
            self._owned_by(owner_user_id)
            .where(Payment.status.in_(OUTSTANDING_STATUSES))
            .order_by(Payment.due_date.asc().nullslast(), Payment.payment_date.asc())
        )
        res = await self.scalars(stmt)
        return list(res)

    async def latest_rent_payment(self, tenant_id: UUID) -> Optional[Payment]:
        stmt = (
            select(Payment)
            .where(
                Payment.tenant_id == tenant_id,
                Payment.payment_type == PaymentType.RENT,
                Payment.status.in_(SUCCESSFUL_STATUSES),
            )
            .order_by(Payment.payment_date.desc())
            .limit(1)
        )
        return await self.scalar_one_or_none(stmt)

    async def rent_paid_for_period(self, tenant_id: UUID, period_start: datetime, period_end: datetime) -> bool:
        """True when a successful rent payment has a billing period starting inside [start, end)."""
        stmt = select(Payment.id).where(
            Payment.tenant_id == tenant_id,
            Payment.payment_type == PaymentType.RENT,
            Payment.status.in_(SUCCESSFUL_STATUSES),
            Payment.period_start >= period_start,
            Payment.period_start < period_end,
        )
        return await self.any_row(stmt)
