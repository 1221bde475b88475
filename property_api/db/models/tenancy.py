from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from property_api.db.base import Base, UUIDPkMixin, TimestampMixin


class BackgroundCheckStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"
    NOT_REQUIRED = "not_required"


class Tenant(UUIDPkMixin, TimestampMixin, Base):
    """
    Tenant variant payload, created once by the onboarding workflow.

    ``unit_id`` is unique: at most one tenant occupies a unit.
    """
    __tablename__ = "tenants"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    unit_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("units.id", ondelete="SET NULL"), nullable=True, unique=True
    )

    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    employer: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    job_title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    monthly_income: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    emergency_contact_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    emergency_contact_phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    lease_start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    lease_end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    move_in_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    move_out_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    number_of_occupants: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    has_pets: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pet_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    smoker: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    background_check_status: Mapped[BackgroundCheckStatus] = mapped_column(
        SAEnum(BackgroundCheckStatus, native_enum=False, length=32),
        nullable=False,
        default=BackgroundCheckStatus.PENDING,
    )
    background_check_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    gateway_customer_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
