from __future__ import annotations

from datetime import datetime
from typing import Any, List, NamedTuple, Optional
from uuid import UUID

from sqlalchemy import select, update

from property_api.db.models.property import Building, Unit
from property_api.db.models.tenancy import Tenant
from property_api.db.models.users import Owner
from .base import BaseRepository


class UnitAccessChain(NamedTuple):
    """Result of the explicit unit -> building -> owner join."""

    unit_id: UUID
    building_id: UUID
    owner_user_id: UUID
    occupant_user_id: Optional[UUID]


class BuildingRepository(BaseRepository):
    """Repository for buildings."""

    async def get_owner_user_id(self, building_id: UUID) -> Optional[UUID]:
        stmt = (
            select(Owner.user_id)
            .select_from(Building)
            .join(Owner, Owner.id == Building.owner_id)
            .where(Building.id == building_id)
        )
        return await self.scalar_one_or_none(stmt)

    async def list_for_owner_user(self, user_id: UUID, *, limit: int, offset: int) -> List[Building]:
        stmt = (
            select(Building)
            .join(Owner, Owner.id == Building.owner_id)
            .where(Owner.user_id == user_id)
            .order_by(Building.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        res = await self.scalars(stmt)
        return list(res)

    async def list_all(self, *, limit: int, offset: int) -> List[Building]:
        stmt = select(Building).order_by(Building.created_at.desc()).offset(offset).limit(limit)
        res = await self.scalars(stmt)
        return list(res)

    async def create_building(self, *, owner_id: UUID, **fields: Any) -> Building:
        return await self.persist(Building(owner_id=owner_id, **fields))


class UnitRepository(BaseRepository):
    """Repository for units, their availability flag and room codes."""

    async def get_unit(self, unit_id: UUID) -> Optional[Unit]:
        stmt = select(Unit).where(Unit.id == unit_id)
        return await self.scalar_one_or_none(stmt)

    async def find_by_room_code(self, room_code: str) -> Optional[Unit]:
        stmt = select(Unit).where(Unit.room_code == room_code)
        return await self.scalar_one_or_none(stmt)

    async def exists_room_code(self, room_code: str) -> bool:
        return await self.any_row(select(Unit.id).where(Unit.room_code == room_code))

    async def get_access_chain(self, unit_id: UUID) -> Optional[UnitAccessChain]:
        stmt = (
            select(Unit.id, Building.id, Owner.user_id, Tenant.user_id)
            .select_from(Unit)
            .join(Building, Building.id == Unit.building_id)
            .join(Owner, Owner.id == Building.owner_id)
            .outerjoin(Tenant, Tenant.unit_id == Unit.id)
            .where(Unit.id == unit_id)
        )
        row = (await self.execute(stmt)).first()
        if row is None:
            return None
        return UnitAccessChain(*row)

    async def create_unit(self, *, building_id: UUID, room_code: str, **fields: Any) -> Unit:
        unit = Unit(building_id=building_id, room_code=room_code, is_available=True, **fields)
        return await self.persist(unit)

    async def set_room_code(self, unit_id: UUID, room_code: str) -> int:
        """Replace the unit's room code. Returns the affected row count."""
        stmt = (
            update(Unit)
            .where(Unit.id == unit_id)
            .values(room_code=room_code)
            .execution_options(synchronize_session=False)
        )
        return await self.rowcount(stmt)

    async def claim_unit(
        self,
        unit_id: UUID,
        *,
        lease_start_date: Optional[datetime] = None,
        lease_end_date: Optional[datetime] = None,
    ) -> bool:
        """
        Atomically flip availability from true to false.

        The WHERE clause re-checks ``is_available`` so two concurrent claims cannot
        both succeed; only the caller that sees one affected row owns the unit.
        """
        values: dict[str, Any] = {"is_available": False}
        if lease_start_date is not None:
            values["lease_start_date"] = lease_start_date
        if lease_end_date is not None:
            values["lease_end_date"] = lease_end_date
        stmt = (
            update(Unit)
            .where(Unit.id == unit_id, Unit.is_available.is_(True))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return await self.rowcount(stmt) == 1
