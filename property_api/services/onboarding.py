from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from property_api.core.errors import EmailInUse, InvalidRoomCode, UnitUnavailable
from property_api.core.security import (
    CallerIdentity,
    create_refresh_token,
    get_password_hash,
    issue_token,
)
from property_api.db.models.property import Unit
from property_api.db.models.tenancy import Tenant
from property_api.db.models.users import Role, User
from property_api.repositories.property import UnitRepository
from property_api.repositories.tenants import TenantRepository
from property_api.repositories.users import UserRepository
from property_api.schemas.tenants import TenantRegistrationRequest
from property_api.services.base import BaseService
from property_api.services.units import UnitRegistry

logger = logging.getLogger(__name__)

_PROFILE_FIELDS = (
    "date_of_birth",
    "employer",
    "job_title",
    "monthly_income",
    "emergency_contact_name",
    "emergency_contact_phone",
    "lease_start_date",
    "lease_end_date",
    "move_in_date",
    "number_of_occupants",
    "has_pets",
    "pet_description",
    "smoker",
)


@dataclass
class OnboardingResult:
    user: User
    tenant: Tenant
    unit: Unit
    identity: CallerIdentity
    access_token: str
    refresh_token: str


class LeasingOnboardingWorkflow(BaseService):
    """
    Turn a room code plus applicant profile into a tenant occupying the unit.

    Everything up to the commit runs in one transaction. The availability flip is a
    conditional update (``is_available = true`` in the WHERE clause) and its row
    count decides whether tenant creation may proceed, so two applicants racing on
    the same code end with exactly one tenant.
    """

    def __init__(self, session: AsyncSession, registry: UnitRegistry) -> None:
        super().__init__(session)
        self.registry = registry
        self.units = UnitRepository(session)
        self.users = UserRepository(session)
        self.tenants = TenantRepository(session)

    # PUBLIC_INTERFACE
    async def register_via_room_code(self, request: TenantRegistrationRequest) -> OnboardingResult:
        """
        Register a new tenant through a room code.

        Raises:
            InvalidRoomCode: no unit carries the code.
            UnitUnavailable: the unit is occupied, including when another applicant
                claimed it between our read and our write.
            EmailInUse: the email is already registered.
        """
        try:
            async with self.unit_of_work():
                unit, user, tenant = await self._claim_and_create(request)
        except IntegrityError as exc:
            raise await self._conflict_for(request.email) from exc

        # The conditional update bypassed the identity map.
        await self.session.refresh(unit)

        identity = CallerIdentity(id=user.id, email=user.email, role=Role.TENANT)
        logger.info("Tenant %s onboarded into unit %s", tenant.id, unit.id)
        return OnboardingResult(
            user=user,
            tenant=tenant,
            unit=unit,
            identity=identity,
            access_token=issue_token(identity),
            refresh_token=create_refresh_token(identity),
        )

    async def _claim_and_create(self, request: TenantRegistrationRequest) -> Tuple[Unit, User, Tenant]:
        unit = await self.registry.find_by_room_code(request.room_code)
        if unit is None:
            raise InvalidRoomCode()
        if not unit.is_available:
            raise UnitUnavailable()
        if await self.users.email_exists(request.email):
            raise EmailInUse()

        claimed = await self.units.claim_unit(
            unit.id,
            lease_start_date=request.lease_start_date,
            lease_end_date=request.lease_end_date,
        )
        if not claimed:
            logger.info("Lost availability race for unit %s", unit.id)
            raise UnitUnavailable()

        user = await self.users.create_user(
            email=request.email,
            hashed_password=get_password_hash(request.password),
            first_name=request.first_name,
            last_name=request.last_name,
            phone=request.phone,
            role=Role.TENANT,
        )
        profile = {name: getattr(request, name) for name in _PROFILE_FIELDS}
        tenant = await self.tenants.create_tenant(user_id=user.id, unit_id=unit.id, **profile)
        return unit, user, tenant

    async def _conflict_for(self, email: str) -> Exception:
        """Classify a unique-constraint failure raised at commit time."""
        if await self.users.email_exists(email):
            return EmailInUse()
        return UnitUnavailable()
