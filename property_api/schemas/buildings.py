from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class BuildingCreate(BaseModel):
    """Create building payload."""
    name: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., min_length=1, max_length=200)
    city: Optional[str] = Field(None, max_length=50)
    state: Optional[str] = Field(None, max_length=50)
    zip_code: Optional[str] = Field(None, max_length=10)
    country: str = Field("USA", max_length=50)
    floors: int = Field(1, ge=1)
    description: Optional[str] = Field(None, max_length=1000)


class BuildingRead(BaseModel):
    """Building read model."""
    id: UUID = Field(..., description="Building id")
    owner_id: UUID = Field(...)
    name: str = Field(...)
    address: str = Field(...)
    city: Optional[str] = Field(None)
    state: Optional[str] = Field(None)
    zip_code: Optional[str] = Field(None)
    country: str = Field(...)
    floors: int = Field(...)
    description: Optional[str] = Field(None)
    created_at: datetime = Field(...)
    updated_at: datetime = Field(...)

    class Config:
        from_attributes = True
