from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from property_api.core.deps import require_roles
from property_api.core.security import CallerIdentity
from property_api.db.models.users import Role
from property_api.db.session import get_async_session
from property_api.schemas.buildings import BuildingCreate, BuildingRead
from property_api.services.units import BuildingService

router = APIRouter(prefix="/buildings", tags=["Buildings"])


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=BuildingRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create building",
    description="Create a building owned by the calling owner.",
)
async def create_building(
    payload: BuildingCreate,
    caller: CallerIdentity = Depends(require_roles(Role.OWNER)),
    session: AsyncSession = Depends(get_async_session),
) -> BuildingRead:
    building = await BuildingService(session).create_building(caller, payload)
    return BuildingRead.model_validate(building)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[BuildingRead],
    summary="List buildings",
    description="List the caller's buildings (all buildings for admins), newest first.",
)
async def list_buildings(
    caller: CallerIdentity = Depends(require_roles(Role.OWNER, Role.ADMIN)),
    session: AsyncSession = Depends(get_async_session),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[BuildingRead]:
    items = await BuildingService(session).list_buildings(caller, limit=limit, offset=offset)
    return [BuildingRead.model_validate(x) for x in items]
