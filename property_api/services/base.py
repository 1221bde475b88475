from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession


class BaseService:
    """
    Base class for services.

    A service holds one session shared by its repositories and owns the
    transaction boundary; repositories only flush.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[None]:
        """
        Commit the block's writes together, or roll all of them back and re-raise.

        Constraint violations surface from the commit inside this block, so callers
        catch IntegrityError around the ``async with``.
        """
        try:
            yield
            await self.session.commit()
        except BaseException:
            await self.session.rollback()
            raise
