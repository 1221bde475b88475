from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from property_api.core.deps import get_current_caller
from property_api.core.errors import EmailInUse
from property_api.core.security import (
    REFRESH,
    CallerIdentity,
    create_access_token,
    create_refresh_token,
    get_password_hash,
    verify_caller,
    verify_password,
)
from property_api.db.models.users import Role
from property_api.db.session import get_async_session
from property_api.repositories.tenants import TenantRepository
from property_api.repositories.users import UserRepository
from property_api.schemas.auth import (
    AdminProfile,
    CallerProfile,
    OwnerDetails,
    OwnerProfile,
    OwnerRegisterRequest,
    RefreshRequest,
    TenantProfile,
    TokenPair,
    UserRead,
)
from property_api.schemas.common import MessageResponse
from property_api.schemas.tenants import TenantRead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _token_pair(identity: CallerIdentity) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(identity),
        refresh_token=create_refresh_token(identity),
    )


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=TokenPair,
    status_code=status.HTTP_201_CREATED,
    summary="Register owner",
    description=(
        "Create a new property owner account and return tokens. Tenants register "
        "through /tenants/register with a room code instead."
    ),
)
async def register_owner(
    payload: OwnerRegisterRequest,
    session: AsyncSession = Depends(get_async_session),
) -> TokenPair:
    """Register a new owner."""
    repo = UserRepository(session)
    if await repo.email_exists(payload.email):
        raise EmailInUse()

    user = await repo.create_user(
        email=payload.email,
        hashed_password=get_password_hash(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone,
        role=Role.OWNER,
    )
    await repo.create_owner(
        user_id=user.id,
        company_name=payload.company_name,
        business_license=payload.business_license,
        tax_id=payload.tax_id,
        bio=payload.bio,
    )
    await session.commit()
    logger.info("Owner %s registered", user.id)
    return _token_pair(CallerIdentity(id=user.id, email=user.email, role=Role.OWNER))


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=TokenPair,
    summary="Login",
    description="Authenticate using OAuth2 password form and receive access/refresh tokens.",
)
async def login_for_tokens(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: AsyncSession = Depends(get_async_session),
) -> TokenPair:
    """Authenticate user and issue tokens."""
    repo = UserRepository(session)
    user = await repo.get_user_by_email(form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=400, detail="User is inactive")
    return _token_pair(CallerIdentity(id=user.id, email=user.email, role=user.role))


# PUBLIC_INTERFACE
@router.post(
    "/refresh",
    response_model=TokenPair,
    summary="Refresh access token",
    description="Issue a new access token from a valid refresh token.",
)
async def refresh_token(
    payload: RefreshRequest,
    session: AsyncSession = Depends(get_async_session),
) -> TokenPair:
    """Validate refresh token and issue a new access token pair."""
    try:
        identity = verify_caller(payload.refresh_token, expected_type=REFRESH)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    repo = UserRepository(session)
    user = await repo.get_user_by_id(identity.id)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return _token_pair(CallerIdentity(id=user.id, email=user.email, role=user.role))


# PUBLIC_INTERFACE
@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout",
    description="Stateless logout. Clients should discard tokens. No server state maintained.",
)
async def logout() -> MessageResponse:
    """Acknowledge logout in stateless JWT systems."""
    return MessageResponse(message="Logged out")


# PUBLIC_INTERFACE
@router.get(
    "/me",
    response_model=CallerProfile,
    summary="Read current caller",
    description="Return the caller's identity together with the variant payload for their role.",
)
async def read_current_caller(
    caller: CallerIdentity = Depends(get_current_caller),
    session: AsyncSession = Depends(get_async_session),
):
    """Return the role-tagged profile of the current caller."""
    users = UserRepository(session)
    user = await users.get_user_by_id(caller.id)
    if user is None:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    user_read = UserRead.model_validate(user)

    if caller.is_owner:
        owner = await users.get_owner_by_user_id(caller.id)
        if owner is None:
            raise HTTPException(status_code=404, detail="Owner profile not found")
        return OwnerProfile(user=user_read, owner=OwnerDetails.model_validate(owner))
    if caller.is_tenant:
        tenant = await TenantRepository(session).get_by_user_id(caller.id)
        if tenant is None:
            raise HTTPException(status_code=404, detail="Tenant profile not found")
        return TenantProfile(user=user_read, tenant=TenantRead.model_validate(tenant))
    return AdminProfile(user=user_read)
