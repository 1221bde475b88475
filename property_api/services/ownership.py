from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from property_api.core.errors import ErrorKind, ForbiddenError, NotFoundError
from property_api.core.security import CallerIdentity
from property_api.repositories.payments import PaymentRepository
from property_api.repositories.property import BuildingRepository, UnitRepository
from property_api.services.base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessDecision:
    """
    Outcome of an ownership check.

    ``kind`` is only set on denial and is either NOT_FOUND (the resource does not
    exist) or FORBIDDEN (it exists but the caller is unrelated to it).
    """

    allowed: bool
    kind: Optional[ErrorKind] = None
    message: str = ""

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def not_found(cls, message: str) -> "AccessDecision":
        return cls(allowed=False, kind=ErrorKind.NOT_FOUND, message=message)

    @classmethod
    def forbidden(cls, message: str) -> "AccessDecision":
        return cls(allowed=False, kind=ErrorKind.FORBIDDEN, message=message)

    def raise_if_denied(self) -> None:
        """Convert a denial into the matching domain error."""
        if self.allowed:
            return
        if self.kind == ErrorKind.NOT_FOUND:
            raise NotFoundError(self.message)
        raise ForbiddenError(self.message)


class OwnershipResolver(BaseService):
    """
    Decide whether a caller may act on a building, unit or payment.

    Owners are resolved by an explicit unit -> building -> owner join. Tenants are
    matched directly against the payment's tenant or the unit's occupant. Admins
    may act on anything that exists.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.buildings = BuildingRepository(session)
        self.units = UnitRepository(session)
        self.payments = PaymentRepository(session)

    # PUBLIC_INTERFACE
    async def check_building(self, caller: CallerIdentity, building_id: UUID) -> AccessDecision:
        owner_user_id = await self.buildings.get_owner_user_id(building_id)
        if owner_user_id is None:
            return AccessDecision.not_found("Building not found")
        if caller.is_admin or (caller.is_owner and owner_user_id == caller.id):
            return AccessDecision.allow()
        return self._deny(caller, "building", building_id)

    # PUBLIC_INTERFACE
    async def check_unit(
        self, caller: CallerIdentity, unit_id: UUID, *, allow_occupant: bool = True
    ) -> AccessDecision:
        """
        Parameters:
            allow_occupant: whether the tenant occupying the unit is allowed too.
                Owner-only actions such as rotating the room code pass False.
        """
        chain = await self.units.get_access_chain(unit_id)
        if chain is None:
            return AccessDecision.not_found("Unit not found")
        if caller.is_admin:
            return AccessDecision.allow()
        if caller.is_owner and chain.owner_user_id == caller.id:
            return AccessDecision.allow()
        if allow_occupant and caller.is_tenant and chain.occupant_user_id == caller.id:
            return AccessDecision.allow()
        return self._deny(caller, "unit", unit_id)

    # PUBLIC_INTERFACE
    async def check_payment(
        self, caller: CallerIdentity, payment_id: UUID, *, allow_tenant: bool = True
    ) -> AccessDecision:
        """
        Parameters:
            allow_tenant: whether the paying tenant is allowed. Refunds pass False.
        """
        chain = await self.payments.get_access_chain(payment_id)
        if chain is None:
            return AccessDecision.not_found("Payment not found")
        if caller.is_admin:
            return AccessDecision.allow()
        if caller.is_owner and chain.owner_user_id == caller.id:
            return AccessDecision.allow()
        if allow_tenant and caller.is_tenant and chain.tenant_user_id == caller.id:
            return AccessDecision.allow()
        return self._deny(caller, "payment", payment_id)

    @staticmethod
    def _deny(caller: CallerIdentity, resource: str, resource_id: UUID) -> AccessDecision:
        logger.info("Access denied: caller %s (%s) on %s %s", caller.id, caller.role.value, resource, resource_id)
        return AccessDecision.forbidden(f"You do not have access to this {resource}")
