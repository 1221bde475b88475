from __future__ import annotations

import enum
import uuid
from typing import Optional

from sqlalchemy import Boolean, Enum as SAEnum, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from property_api.db.base import Base, UUIDPkMixin, TimestampMixin


class Role(str, enum.Enum):
    """Role tag of a user row; selects which variant payload table applies."""
    OWNER = "owner"
    TENANT = "tenant"
    ADMIN = "admin"


class User(UUIDPkMixin, TimestampMixin, Base):
    """
    Identity record shared by every role.

    Role-specific fields live in the variant tables (``owners``, ``tenants``)
    keyed by ``user_id`` instead of in a class hierarchy.
    """
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    hashed_password: Mapped[str] = mapped_column(Text, nullable=False)
    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    role: Mapped[Role] = mapped_column(SAEnum(Role, native_enum=False, length=16), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class Owner(UUIDPkMixin, TimestampMixin, Base):
    """Owner variant payload."""
    __tablename__ = "owners"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    company_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    business_license: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tax_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
