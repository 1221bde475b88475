from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import get_settings


_ENGINE: AsyncEngine | None = None
_SESSION_MAKER: async_sessionmaker[AsyncSession] | None = None


def _ensure_engine_initialized() -> None:
    """Create the process-wide engine and session factory on first use."""
    global _ENGINE, _SESSION_MAKER
    if _ENGINE is None:
        settings = get_settings()
        _ENGINE = create_async_engine(settings.async_database_url, **settings.engine_options)
    if _SESSION_MAKER is None:
        _SESSION_MAKER = make_session_maker(_ENGINE)


# PUBLIC_INTERFACE
def make_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Build a session factory.

    ``expire_on_commit`` is off because services return ORM rows to the API layer
    after committing. ``autoflush`` is off so the onboarding and refund paths
    decide exactly when their writes reach the database.
    """
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


# PUBLIC_INTERFACE
def get_engine() -> AsyncEngine:
    """Return the global AsyncEngine instance."""
    _ensure_engine_initialized()
    assert _ENGINE is not None
    return _ENGINE


# PUBLIC_INTERFACE
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Return the global session factory."""
    _ensure_engine_initialized()
    assert _SESSION_MAKER is not None
    return _SESSION_MAKER


# PUBLIC_INTERFACE
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with get_session_maker()() as session:
        yield session


# PUBLIC_INTERFACE
@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """
    Session for scripts that run outside a request (seeding, maintenance jobs).

    Rolls back if the block raises; committing is left to the services.
    """
    async with get_session_maker()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
