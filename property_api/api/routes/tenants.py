from __future__ import annotations

from fastapi import APIRouter, Depends, status

from property_api.core.deps import get_unit_registry
from property_api.schemas.tenants import (
    RoomCodeRequest,
    TenantRead,
    TenantRegistrationRequest,
    TenantRegistrationResponse,
)
from property_api.schemas.units import UnitPreview
from property_api.services.onboarding import LeasingOnboardingWorkflow
from property_api.services.units import UnitRegistry

router = APIRouter(prefix="/tenants", tags=["Tenants"])


# PUBLIC_INTERFACE
@router.post(
    "/validate-room-code",
    response_model=UnitPreview,
    summary="Validate room code",
    description="Check a room code before registering. Returns 404 for unknown codes and 409 for occupied units.",
)
async def validate_room_code(
    payload: RoomCodeRequest,
    registry: UnitRegistry = Depends(get_unit_registry),
) -> UnitPreview:
    unit = await registry.validate_room_code(payload.room_code)
    return UnitPreview.model_validate(unit)


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=TenantRegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register tenant with room code",
    description=(
        "Self-service tenant registration. Creates the tenant, binds it to the unit "
        "behind the room code and marks the unit unavailable in one transaction."
    ),
)
async def register_tenant(
    payload: TenantRegistrationRequest,
    registry: UnitRegistry = Depends(get_unit_registry),
) -> TenantRegistrationResponse:
    workflow = LeasingOnboardingWorkflow(registry.session, registry)
    result = await workflow.register_via_room_code(payload)
    return TenantRegistrationResponse(
        tenant=TenantRead.model_validate(result.tenant),
        unit=UnitPreview.model_validate(result.unit),
        access_token=result.access_token,
        refresh_token=result.refresh_token,
    )
