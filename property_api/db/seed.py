"""
Database seeding utilities for a demo environment.

Seeds:
- Demo owner account (SEED_OWNER_EMAIL / SEED_OWNER_PASSWORD)
- One building for that owner
- One available unit with a generated room code

Seeding is idempotent: an existing demo owner is left untouched.

Usage:
  python -m property_api.db.run_migrations upgrade head
  python -m property_api.db.seed
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from property_api.core.security import CallerIdentity, get_password_hash
from property_api.core.settings import get_app_settings
from property_api.db.models.users import Role
from property_api.db.session import session_scope
from property_api.repositories.users import UserRepository
from property_api.schemas.buildings import BuildingCreate
from property_api.schemas.units import UnitCreate
from property_api.services.units import BuildingService, RoomCodeGenerator, UnitRegistry

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
async def seed_all() -> None:
    """
    Seed the database with a demo owner, building and unit.

    The unit's room code is logged so it can be used for a tenant registration.
    """
    async with session_scope() as session:
        owner = await _ensure_demo_owner(session)
        if owner is None:
            logger.info("Demo owner already present; skipping seed")
            return

        building = await BuildingService(session).create_building(
            owner,
            BuildingCreate(name="Maple Court", address="12 Maple Street", city="Springfield", floors=3),
        )
        unit = await UnitRegistry(session, RoomCodeGenerator()).create_unit(
            owner,
            UnitCreate(
                building_id=building.id,
                unit_number="2B",
                floor=2,
                bedrooms=2,
                bathrooms=Decimal("1.0"),
                square_feet=850,
                monthly_rent=Decimal("1200.00"),
                security_deposit=Decimal("1200.00"),
            ),
        )
        logger.info("Seeded unit %s with room code %s", unit.id, unit.room_code)


async def _ensure_demo_owner(session: AsyncSession) -> CallerIdentity | None:
    """Create the demo owner, or return None when the account already exists."""
    settings = get_app_settings()
    users = UserRepository(session)
    if await users.email_exists(settings.SEED_OWNER_EMAIL):
        return None

    user = await users.create_user(
        email=settings.SEED_OWNER_EMAIL,
        hashed_password=get_password_hash(settings.SEED_OWNER_PASSWORD),
        first_name="Demo",
        last_name="Owner",
        role=Role.OWNER,
    )
    await users.create_owner(user_id=user.id, company_name="Demo Properties")
    await session.commit()
    return CallerIdentity(id=user.id, email=user.email, role=Role.OWNER)


# PUBLIC_INTERFACE
def main() -> None:
    """Entrypoint to run the asynchronous seeding."""
    asyncio.run(seed_all())


if __name__ == "__main__":
    main()
