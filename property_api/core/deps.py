from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from property_api.core.logging import bind_caller
from property_api.core.security import CallerIdentity, verify_caller
from property_api.db.models.users import Role
from property_api.db.session import get_async_session
from property_api.repositories.users import UserRepository
from property_api.services.gateway import PaymentGateway, StripePaymentGateway
from property_api.services.payments import PaymentService
from property_api.services.units import RoomCodeGenerator, UnitRegistry

logger = logging.getLogger(__name__)

# OAuth2 bearer (used by docs); login endpoint path referenced here
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


@lru_cache(maxsize=1)
def _room_code_generator() -> RoomCodeGenerator:
    return RoomCodeGenerator()


# PUBLIC_INTERFACE
def get_room_code_generator() -> RoomCodeGenerator:
    """Return the process-scoped room code generator."""
    return _room_code_generator()


@lru_cache(maxsize=1)
def _payment_gateway() -> PaymentGateway:
    return StripePaymentGateway()


# PUBLIC_INTERFACE
def get_payment_gateway() -> PaymentGateway:
    """Return the shared payment gateway adapter. Overridden in tests with a scripted fake."""
    return _payment_gateway()


# PUBLIC_INTERFACE
async def get_current_caller(
    request: Request,
    token: str = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_async_session),
) -> CallerIdentity:
    """
    Resolve the verified caller identity from the Authorization bearer token.

    The token must be a valid access token for an existing, active user whose
    role still matches the token's role claim.
    """
    try:
        identity = verify_caller(token)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    repo = UserRepository(session)
    user = await repo.get_user_by_id(identity.id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    if user.role != identity.role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    bind_caller(str(identity.id))
    request.state.caller_id = str(identity.id)
    return identity


# PUBLIC_INTERFACE
def require_roles(*required: Role):
    """
    Create a dependency that requires the current caller to hold one of the given roles.
    Returns the caller identity so routes can use it directly.
    """

    async def _dep(caller: CallerIdentity = Depends(get_current_caller)) -> CallerIdentity:
        if caller.role not in required:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return caller

    return _dep


# PUBLIC_INTERFACE
def get_unit_registry(
    session: AsyncSession = Depends(get_async_session),
    generator: RoomCodeGenerator = Depends(get_room_code_generator),
) -> UnitRegistry:
    """Build the unit registry for this request around the shared code generator."""
    return UnitRegistry(session, generator)


# PUBLIC_INTERFACE
def get_payment_service(
    session: AsyncSession = Depends(get_async_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PaymentService:
    """Build the payment service for this request."""
    return PaymentService(session, gateway)
