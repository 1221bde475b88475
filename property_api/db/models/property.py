from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from property_api.db.base import Base, UUIDPkMixin, TimestampMixin

ROOM_CODE_LENGTH = 8


class UnitType(str, enum.Enum):
    STUDIO = "studio"
    APARTMENT = "apartment"
    TOWNHOUSE = "townhouse"
    CONDO = "condo"
    LOFT = "loft"
    PENTHOUSE = "penthouse"
    DUPLEX = "duplex"
    SINGLE_FAMILY = "single_family"


class Building(UUIDPkMixin, TimestampMixin, Base):
    """Building owned by an owner; parent of units."""
    __tablename__ = "buildings"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("owners.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    city: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    state: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    zip_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    country: Mapped[str] = mapped_column(Text, nullable=False, default="USA", server_default="USA")
    floors: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Unit(UUIDPkMixin, TimestampMixin, Base):
    """One rentable space inside a building."""
    __tablename__ = "units"
    __table_args__ = (
        CheckConstraint("monthly_rent >= 0", name="monthly_rent_non_negative"),
        CheckConstraint(
            "security_deposit IS NULL OR security_deposit >= 0",
            name="security_deposit_non_negative",
        ),
    )

    building_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("buildings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    unit_number: Mapped[str] = mapped_column(String(20), nullable=False)
    floor: Mapped[int] = mapped_column(Integer, nullable=False)
    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False)
    bathrooms: Mapped[Decimal] = mapped_column(Numeric(3, 1), nullable=False)
    square_feet: Mapped[int] = mapped_column(Integer, nullable=False)
    monthly_rent: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    security_deposit: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    unit_type: Mapped[UnitType] = mapped_column(
        SAEnum(UnitType, native_enum=False, length=32), nullable=False, default=UnitType.APARTMENT
    )

    has_balcony: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_dishwasher: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_washing_machine: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_air_conditioning: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    furnished: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pets_allowed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    smoking_allowed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # Globally unique; enforced here and re-checked by the registry on generation.
    room_code: Mapped[str] = mapped_column(String(ROOM_CODE_LENGTH), nullable=False, unique=True)
    lease_start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    lease_end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
