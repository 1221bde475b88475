from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from property_api.db.models.property import UnitType


class UnitCreate(BaseModel):
    """Create unit payload. The room code is always generated server-side."""
    building_id: UUID = Field(..., description="Parent building")
    unit_number: str = Field(..., min_length=1, max_length=20)
    floor: int = Field(..., ge=0)
    bedrooms: int = Field(..., ge=0)
    bathrooms: Decimal = Field(..., ge=0, max_digits=3, decimal_places=1)
    square_feet: int = Field(..., gt=0)
    monthly_rent: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    security_deposit: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    description: Optional[str] = Field(None)
    unit_type: UnitType = Field(UnitType.APARTMENT)
    has_balcony: bool = Field(False)
    has_dishwasher: bool = Field(False)
    has_washing_machine: bool = Field(False)
    has_air_conditioning: bool = Field(False)
    furnished: bool = Field(False)
    pets_allowed: bool = Field(False)
    smoking_allowed: bool = Field(False)


class UnitRead(BaseModel):
    """Unit read model, including the current room code."""
    id: UUID = Field(..., description="Unit id")
    building_id: UUID = Field(...)
    unit_number: str = Field(...)
    floor: int = Field(...)
    bedrooms: int = Field(...)
    bathrooms: Decimal = Field(...)
    square_feet: int = Field(...)
    monthly_rent: Decimal = Field(...)
    security_deposit: Optional[Decimal] = Field(None)
    description: Optional[str] = Field(None)
    unit_type: UnitType = Field(...)
    has_balcony: bool = Field(...)
    has_dishwasher: bool = Field(...)
    has_washing_machine: bool = Field(...)
    has_air_conditioning: bool = Field(...)
    furnished: bool = Field(...)
    pets_allowed: bool = Field(...)
    smoking_allowed: bool = Field(...)
    is_available: bool = Field(...)
    room_code: str = Field(..., description="Current 8-character room code")
    lease_start_date: Optional[datetime] = Field(None)
    lease_end_date: Optional[datetime] = Field(None)
    created_at: datetime = Field(...)
    updated_at: datetime = Field(...)

    class Config:
        from_attributes = True


class UnitPreview(BaseModel):
    """Public view of a unit shown to an applicant holding its room code."""
    id: UUID = Field(..., description="Unit id")
    building_id: UUID = Field(...)
    unit_number: str = Field(...)
    unit_type: UnitType = Field(...)
    floor: int = Field(...)
    bedrooms: int = Field(...)
    bathrooms: Decimal = Field(...)
    square_feet: int = Field(...)
    monthly_rent: Decimal = Field(...)
    security_deposit: Optional[Decimal] = Field(None)
    is_available: bool = Field(...)

    class Config:
        from_attributes = True


class RoomCodeRead(BaseModel):
    """Freshly generated room code for a unit."""
    unit_id: UUID = Field(...)
    room_code: str = Field(...)
