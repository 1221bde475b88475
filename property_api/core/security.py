from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from jose import JWTError, jwt
from passlib.context import CryptContext

from property_api.core.settings import get_app_settings
from property_api.db.models.users import Role

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class CallerIdentity:
    """Verified identity of the caller as handed to the core services."""

    id: UUID
    email: str
    role: Role

    @property
    def is_owner(self) -> bool:
        return self.role == Role.OWNER

    @property
    def is_tenant(self) -> bool:
        return self.role == Role.TENANT

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


# PUBLIC_INTERFACE
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a hashed password using bcrypt."""
    return _pwd_context.verify(plain_password, hashed_password)


# PUBLIC_INTERFACE
def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt."""
    return _pwd_context.hash(password)


ACCESS = "access"
REFRESH = "refresh"


def _sign(identity: CallerIdentity, token_type: str, lifetime: timedelta) -> str:
    """Sign a token whose claims are exactly the caller identity plus type and expiry."""
    settings = get_app_settings()
    issued = datetime.now(tz=timezone.utc)
    claims: Dict[str, Any] = {
        "sub": str(identity.id),
        "email": identity.email,
        "role": identity.role.value,
        "type": token_type,
        "iat": issued,
        "exp": issued + lifetime,
    }
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


# PUBLIC_INTERFACE
def create_access_token(identity: CallerIdentity, expires_minutes: Optional[int] = None) -> str:
    """Short-lived bearer token accepted by get_current_caller."""
    minutes = expires_minutes or get_app_settings().ACCESS_TOKEN_EXPIRE_MINUTES
    return _sign(identity, ACCESS, timedelta(minutes=minutes))


# PUBLIC_INTERFACE
def create_refresh_token(identity: CallerIdentity, expires_minutes: Optional[int] = None) -> str:
    """Longer-lived token only accepted by the refresh endpoint."""
    minutes = expires_minutes or get_app_settings().REFRESH_TOKEN_EXPIRE_MINUTES
    return _sign(identity, REFRESH, timedelta(minutes=minutes))


# PUBLIC_INTERFACE
def issue_token(identity: CallerIdentity) -> str:
    """Issue the credential token handed back to a freshly verified identity."""
    return create_access_token(identity)


# PUBLIC_INTERFACE
def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT; raises JWTError if invalid/expired."""
    settings = get_app_settings()
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


# PUBLIC_INTERFACE
def verify_caller(token: str, expected_type: str = ACCESS) -> CallerIdentity:
    """
    Resolve a credential token into a CallerIdentity.

    Raises:
        JWTError: when the token is invalid, expired, of the wrong type or missing claims.
    """
    claims = decode_token(token)
    if claims.get("type") != expected_type:
        raise JWTError("Invalid token type")
    try:
        return CallerIdentity(
            id=UUID(str(claims["sub"])),
            email=str(claims["email"]),
            role=Role(claims["role"]),
        )
    except (KeyError, ValueError) as exc:
        raise JWTError("Token is missing identity claims") from exc
