from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Path, status

from property_api.core.deps import get_current_caller, get_unit_registry, require_roles
from property_api.core.security import CallerIdentity
from property_api.db.models.users import Role
from property_api.schemas.units import RoomCodeRead, UnitCreate, UnitRead
from property_api.services.units import UnitRegistry

router = APIRouter(prefix="/units", tags=["Units"])


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=UnitRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create unit",
    description="Create a unit in one of the caller's buildings. A unique room code is generated.",
)
async def create_unit(
    payload: UnitCreate,
    caller: CallerIdentity = Depends(require_roles(Role.OWNER, Role.ADMIN)),
    registry: UnitRegistry = Depends(get_unit_registry),
) -> UnitRead:
    unit = await registry.create_unit(caller, payload)
    return UnitRead.model_validate(unit)


# PUBLIC_INTERFACE
@router.get(
    "/{unit_id}",
    response_model=UnitRead,
    summary="Get unit",
    description="Read a unit. Allowed for the building owner, the occupying tenant and admins.",
)
async def get_unit(
    unit_id: UUID = Path(..., description="Unit ID"),
    caller: CallerIdentity = Depends(get_current_caller),
    registry: UnitRegistry = Depends(get_unit_registry),
) -> UnitRead:
    unit = await registry.get_unit(caller, unit_id)
    return UnitRead.model_validate(unit)


# PUBLIC_INTERFACE
@router.post(
    "/{unit_id}/regenerate-room-code",
    response_model=RoomCodeRead,
    summary="Regenerate room code",
    description="Replace the unit's room code. The previous code stops working immediately.",
)
async def regenerate_room_code(
    unit_id: UUID = Path(..., description="Unit ID"),
    caller: CallerIdentity = Depends(require_roles(Role.OWNER, Role.ADMIN)),
    registry: UnitRegistry = Depends(get_unit_registry),
) -> RoomCodeRead:
    code = await registry.regenerate_room_code(caller, unit_id)
    return RoomCodeRead(unit_id=unit_id, room_code=code)
