from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from property_api.db.models.users import Role
from property_api.schemas.tenants import TenantRead


class TokenPair(BaseModel):
    """Access and refresh tokens."""
    token_type: str = Field("bearer", description="Token type, typically 'bearer'")
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")


class RefreshRequest(BaseModel):
    """Request to refresh an access token."""
    refresh_token: str = Field(..., description="Refresh token")


class OwnerRegisterRequest(BaseModel):
    """Registration details for a new property owner."""
    email: EmailStr = Field(..., description="Owner email")
    password: str = Field(..., min_length=6, description="Owner password")
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    phone: Optional[str] = Field(None)
    company_name: Optional[str] = Field(None)
    business_license: Optional[str] = Field(None)
    tax_id: Optional[str] = Field(None)
    bio: Optional[str] = Field(None)


class UserRead(BaseModel):
    """Identity fields shared by every role."""
    id: UUID = Field(..., description="User ID")
    email: EmailStr = Field(..., description="User email")
    first_name: str = Field(...)
    last_name: str = Field(...)
    phone: Optional[str] = Field(None)
    role: Role = Field(..., description="Role tag")
    is_active: bool = Field(..., description="Active flag")
    created_at: datetime = Field(..., description="Created timestamp")

    class Config:
        from_attributes = True


class OwnerDetails(BaseModel):
    """Owner variant payload."""
    id: UUID = Field(..., description="Owner ID")
    company_name: Optional[str] = Field(None)
    business_license: Optional[str] = Field(None)
    tax_id: Optional[str] = Field(None)
    bio: Optional[str] = Field(None)

    class Config:
        from_attributes = True


class OwnerProfile(BaseModel):
    role: Literal[Role.OWNER] = Role.OWNER
    user: UserRead
    owner: OwnerDetails


class TenantProfile(BaseModel):
    role: Literal[Role.TENANT] = Role.TENANT
    user: UserRead
    tenant: TenantRead


class AdminProfile(BaseModel):
    role: Literal[Role.ADMIN] = Role.ADMIN
    user: UserRead


# Role-tagged profile returned by /auth/me.
CallerProfile = Annotated[
    Union[OwnerProfile, TenantProfile, AdminProfile],
    Field(discriminator="role"),
]
