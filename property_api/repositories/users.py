from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import select

from property_api.db.models.users import Owner, Role, User
from .base import BaseRepository


class UserRepository(BaseRepository):
    """Repository for role-tagged users and the owner variant payload."""

    @staticmethod
    def normalize_email(email: str) -> str:
        return email.strip().lower()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == self.normalize_email(email))
        return await self.scalar_one_or_none(stmt)

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        stmt = select(User).where(User.id == user_id)
        return await self.scalar_one_or_none(stmt)

    async def email_exists(self, email: str) -> bool:
        return await self.any_row(select(User.id).where(User.email == self.normalize_email(email)))

    async def create_user(
        self,
        *,
        email: str,
        hashed_password: str,
        first_name: str,
        last_name: str,
        role: Role,
        phone: Optional[str] = None,
    ) -> User:
        user = User(
            email=self.normalize_email(email),
            hashed_password=hashed_password,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            role=role,
            is_active=True,
        )
        return await self.persist(user)

    async def get_owner_by_user_id(self, user_id: UUID) -> Optional[Owner]:
        stmt = select(Owner).where(Owner.user_id == user_id)
        return await self.scalar_one_or_none(stmt)

    async def create_owner(
        self,
        *,
        user_id: UUID,
        company_name: Optional[str] = None,
        business_license: Optional[str] = None,
        tax_id: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> Owner:
        owner = Owner(
            user_id=user_id,
            company_name=company_name,
            business_license=business_license,
            tax_id=tax_id,
            bio=bio,
        )
        return await self.persist(owner)
