from __future__ import annotations

import logging
import secrets
import string
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from property_api.core.errors import (
    CodeSpaceExhausted,
    ForbiddenError,
    InvalidRoomCode,
    NotFoundError,
    UnitUnavailable,
)
from property_api.core.security import CallerIdentity
from property_api.core.settings import get_app_settings
from property_api.db.models.property import Building, ROOM_CODE_LENGTH, Unit
from property_api.repositories.property import BuildingRepository, UnitRepository
from property_api.repositories.users import UserRepository
from property_api.schemas.buildings import BuildingCreate
from property_api.schemas.units import UnitCreate
from property_api.services.base import BaseService
from property_api.services.ownership import OwnershipResolver

logger = logging.getLogger(__name__)

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


class RoomCodeGenerator:
    """
    Process-scoped source of room codes.

    Holds its own cryptographically strong random source; one instance is created
    at startup and handed to the registry through dependency injection.
    """

    def __init__(self, rng: Optional[secrets.SystemRandom] = None, length: int = ROOM_CODE_LENGTH) -> None:
        self._rng = rng or secrets.SystemRandom()
        self.length = length

    def new_code(self) -> str:
        return "".join(self._rng.choice(ROOM_CODE_ALPHABET) for _ in range(self.length))


def normalize_room_code(code: str) -> str:
    return code.strip().upper()


class UnitRegistry(BaseService):
    """
    Owns unit records: availability, occupancy and room codes.

    Room-code uniqueness is checked when a code is generated, but the unique
    constraint on ``units.room_code`` is the real guard; writes that lose the race
    are rolled back and retried with a fresh code.
    """

    def __init__(
        self,
        session: AsyncSession,
        generator: RoomCodeGenerator,
        *,
        max_attempts: Optional[int] = None,
    ) -> None:
        super().__init__(session)
        self.generator = generator
        self.max_attempts = max_attempts or get_app_settings().ROOM_CODE_MAX_ATTEMPTS
        self.units = UnitRepository(session)
        self.buildings = BuildingRepository(session)
        self.resolver = OwnershipResolver(session)

    # PUBLIC_INTERFACE
    async def generate_unique_room_code(self) -> str:
        """
        Return an 8-character [A-Z0-9] code not currently assigned to any unit.

        The result is only free at the instant of the check; callers must persist
        it and handle a unique-constraint conflict.

        Raises:
            CodeSpaceExhausted: every attempt collided with an existing code.
        """
        for _ in range(self.max_attempts):
            code = self.generator.new_code()
            if not await self.units.exists_room_code(code):
                return code
            logger.debug("Room code collision during generation; retrying")
        raise CodeSpaceExhausted("Could not generate a unique room code")

    # PUBLIC_INTERFACE
    async def find_by_room_code(self, code: str) -> Optional[Unit]:
        """Look up a unit by room code without mutating anything."""
        return await self.units.find_by_room_code(normalize_room_code(code))

    # PUBLIC_INTERFACE
    async def validate_room_code(self, code: str) -> Unit:
        """
        Preview the unit behind a room code before registration.

        Raises:
            InvalidRoomCode: no unit carries this code.
            UnitUnavailable: the unit is already occupied.
        """
        unit = await self.find_by_room_code(code)
        if unit is None:
            raise InvalidRoomCode()
        if not unit.is_available:
            raise UnitUnavailable()
        return unit

    # PUBLIC_INTERFACE
    async def get_unit(self, caller: CallerIdentity, unit_id: UUID) -> Unit:
        """Ownership-gated read: the owner, the occupant and admins may read a unit."""
        decision = await self.resolver.check_unit(caller, unit_id, allow_occupant=True)
        decision.raise_if_denied()
        unit = await self.units.get_unit(unit_id)
        if unit is None:
            raise NotFoundError("Unit not found")
        return unit

    # PUBLIC_INTERFACE
    async def create_unit(self, caller: CallerIdentity, payload: UnitCreate) -> Unit:
        """
        Create a unit under one of the caller's buildings with a fresh room code.

        Raises:
            NotFoundError/ForbiddenError: the building is absent or not the caller's.
            CodeSpaceExhausted: no code could be persisted within the retry budget.
        """
        decision = await self.resolver.check_building(caller, payload.building_id)
        decision.raise_if_denied()

        fields = payload.model_dump(exclude={"building_id"})
        for _ in range(self.max_attempts):
            code = await self.generate_unique_room_code()
            try:
                async with self.unit_of_work():
                    unit = await self.units.create_unit(
                        building_id=payload.building_id, room_code=code, **fields
                    )
            except IntegrityError:
                if await self.units.exists_room_code(code):
                    logger.warning("Room code taken concurrently while creating unit; retrying")
                    continue
                raise
            logger.info("Unit %s created in building %s", unit.id, payload.building_id)
            return unit
        raise CodeSpaceExhausted("Could not persist a unique room code")

    # PUBLIC_INTERFACE
    async def regenerate_room_code(self, caller: CallerIdentity, unit_id: UUID) -> str:
        """
        Replace a unit's room code. The old code stops working as soon as this commits.

        Only the owner of the unit's building (or an admin) may rotate the code.
        """
        decision = await self.resolver.check_unit(caller, unit_id, allow_occupant=False)
        decision.raise_if_denied()

        for _ in range(self.max_attempts):
            code = await self.generate_unique_room_code()
            try:
                async with self.unit_of_work():
                    await self.units.set_room_code(unit_id, code)
            except IntegrityError:
                if await self.units.exists_room_code(code):
                    logger.warning("Room code taken concurrently while rotating unit %s; retrying", unit_id)
                    continue
                raise
            logger.info("Room code rotated for unit %s", unit_id)
            return code
        raise CodeSpaceExhausted("Could not persist a unique room code")


class BuildingService(BaseService):
    """Minimal owner-scoped building management so units have a parent."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.buildings = BuildingRepository(session)
        self.users = UserRepository(session)

    # PUBLIC_INTERFACE
    async def create_building(self, caller: CallerIdentity, payload: BuildingCreate) -> Building:
        owner = await self.users.get_owner_by_user_id(caller.id)
        if owner is None:
            raise ForbiddenError("Only owners can create buildings")
        building = await self.buildings.create_building(owner_id=owner.id, **payload.model_dump())
        await self.commit()
        logger.info("Building %s created for owner %s", building.id, owner.id)
        return building

    # PUBLIC_INTERFACE
    async def list_buildings(self, caller: CallerIdentity, *, limit: int = 100, offset: int = 0) -> List[Building]:
        if caller.is_admin:
            return await self.buildings.list_all(limit=limit, offset=offset)
        return await self.buildings.list_for_owner_user(caller.id, limit=limit, offset=offset)
