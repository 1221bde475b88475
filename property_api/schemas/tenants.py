from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from property_api.db.models.tenancy import BackgroundCheckStatus
from property_api.schemas.units import UnitPreview


class RoomCodeRequest(BaseModel):
    """Room code submitted for a pre-registration check."""
    room_code: str = Field(..., min_length=1, max_length=32, description="8-character room code")


class TenantRegistrationRequest(BaseModel):
    """Self-service tenant registration through a room code."""
    room_code: str = Field(..., min_length=1, max_length=32, description="8-character room code")
    email: EmailStr = Field(...)
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    phone: Optional[str] = Field(None)

    date_of_birth: Optional[date] = Field(None)
    employer: Optional[str] = Field(None)
    job_title: Optional[str] = Field(None)
    monthly_income: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    emergency_contact_name: Optional[str] = Field(None)
    emergency_contact_phone: Optional[str] = Field(None)

    lease_start_date: Optional[datetime] = Field(None)
    lease_end_date: Optional[datetime] = Field(None)
    move_in_date: Optional[datetime] = Field(None)

    number_of_occupants: int = Field(1, ge=1)
    has_pets: bool = Field(False)
    pet_description: Optional[str] = Field(None)
    smoker: bool = Field(False)


class TenantRead(BaseModel):
    """Tenant read model."""
    id: UUID = Field(..., description="Tenant ID")
    user_id: UUID = Field(...)
    unit_id: Optional[UUID] = Field(None)
    date_of_birth: Optional[date] = Field(None)
    employer: Optional[str] = Field(None)
    job_title: Optional[str] = Field(None)
    monthly_income: Optional[Decimal] = Field(None)
    emergency_contact_name: Optional[str] = Field(None)
    emergency_contact_phone: Optional[str] = Field(None)
    lease_start_date: Optional[datetime] = Field(None)
    lease_end_date: Optional[datetime] = Field(None)
    move_in_date: Optional[datetime] = Field(None)
    move_out_date: Optional[datetime] = Field(None)
    number_of_occupants: int = Field(...)
    has_pets: bool = Field(...)
    pet_description: Optional[str] = Field(None)
    smoker: bool = Field(...)
    background_check_status: BackgroundCheckStatus = Field(...)
    background_check_date: Optional[datetime] = Field(None)
    created_at: datetime = Field(...)

    class Config:
        from_attributes = True


class TenantRegistrationResponse(BaseModel):
    """Result of a successful room-code registration."""
    tenant: TenantRead
    unit: UnitPreview
    token_type: str = Field("bearer")
    access_token: str = Field(..., description="Credential token for the new tenant")
    refresh_token: str = Field(...)
