from __future__ import annotations

import re
from typing import Any, Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Database settings.

    Reads from environment variables (or .env via pydantic-settings):
      - DATABASE_URL (full URL, takes precedence; sqlite URLs are accepted for local runs)
      - POSTGRES_USER / POSTGRES_PASSWORD / POSTGRES_DB / POSTGRES_HOST / POSTGRES_PORT
      - DB_ISOLATION_LEVEL, DB_POOL_SIZE, DB_MAX_OVERFLOW, SQL_ECHO
    """

    DATABASE_URL: Optional[str] = Field(
        default=None, description="If provided, full database connection URL."
    )
    POSTGRES_USER: Optional[str] = Field(default=None, description="DB username")
    POSTGRES_PASSWORD: Optional[str] = Field(default=None, description="DB password")
    POSTGRES_DB: Optional[str] = Field(default=None, description="Database name")
    POSTGRES_PORT: Optional[int] = Field(default=5432, description="Database port")
    POSTGRES_HOST: Optional[str] = Field(default="localhost", description="Database host")

    # Unit claims rely on conditional updates and refunds on row locks, both of
    # which need at least READ COMMITTED.
    DB_ISOLATION_LEVEL: str = Field(default="READ COMMITTED")
    DB_POOL_SIZE: int = Field(default=5, ge=1)
    DB_MAX_OVERFLOW: int = Field(default=10, ge=0)
    SQL_ECHO: bool = Field(default=False, description="Echo SQL statements for debugging")

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def database_url(self) -> str:
        """DATABASE_URL if set, otherwise a PostgreSQL URL built from the POSTGRES_* parts."""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        if not all([self.POSTGRES_USER, self.POSTGRES_PASSWORD, self.POSTGRES_DB]):
            raise ValueError(
                "Database configuration missing. Set DATABASE_URL or "
                "POSTGRES_USER, POSTGRES_PASSWORD and POSTGRES_DB."
            )
        host = self.POSTGRES_HOST or "localhost"
        port = self.POSTGRES_PORT or 5432
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{host}:{port}/{self.POSTGRES_DB}"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def async_database_url(self) -> str:
        """The URL with an async driver: asyncpg for PostgreSQL, aiosqlite for SQLite."""
        url = self.database_url
        if self.is_sqlite:
            return re.sub(r"^sqlite(\+\w+)?://", "sqlite+aiosqlite://", url)
        return re.sub(r"^postgres(ql)?(\+\w+)?://", "postgresql+asyncpg://", url)

    @property
    def sync_database_url(self) -> str:
        """Sync URL variant used by Alembic offline mode."""
        url = self.database_url
        if self.is_sqlite:
            return re.sub(r"^sqlite\+\w+://", "sqlite://", url)
        return re.sub(r"^postgres(ql)?(\+\w+)?://", "postgresql://", url)

    @property
    def engine_options(self) -> Dict[str, Any]:
        """Keyword arguments for create_async_engine for the configured backend."""
        options: Dict[str, Any] = {"echo": self.SQL_ECHO}
        if self.is_sqlite:
            # SQLite has no pool sizing and serializes writers on its own.
            options["connect_args"] = {"check_same_thread": False}
            return options
        options.update(
            pool_pre_ping=True,
            pool_size=self.DB_POOL_SIZE,
            max_overflow=self.DB_MAX_OVERFLOW,
            isolation_level=self.DB_ISOLATION_LEVEL,
        )
        return options


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return a settings object for reuse across modules."""
    return Settings()
