from __future__ import annotations

from typing import Any, Optional, TypeVar

from sqlalchemy import Executable, Select, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository:
    """
    Base class for repositories.

    Repositories stage changes and flush them; they never commit. The calling
    service owns the transaction so a multi-step workflow lands as one unit.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def execute(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute a SQLAlchemy statement."""
        return await self.session.execute(statement, params or {})

    async def scalars(self, statement: Executable):
        result = await self.execute(statement)
        return result.scalars()

    async def scalar_one_or_none(self, statement: Executable):
        result = await self.execute(statement)
        return result.scalar_one_or_none()

    async def any_row(self, statement: Select) -> bool:
        """True if the SELECT matches at least one row (an EXISTS probe, not a count)."""
        result = await self.execute(select(statement.exists()))
        return bool(result.scalar())

    async def rowcount(self, statement: Executable) -> int:
        """Run an UPDATE/DELETE and return how many rows it touched."""
        result = await self.execute(statement)
        return result.rowcount

    async def persist(self, entity: T) -> T:
        """Stage a new row and flush so unique and check constraints fire now."""
        self.session.add(entity)
        await self.session.flush()
        return entity
