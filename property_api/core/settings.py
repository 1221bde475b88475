from __future__ import annotations

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application-level settings for the FastAPI service.

    This is separate from property_api.db.config.Settings, which focuses on the database layer.
    """

    # FastAPI metadata
    APP_NAME: str = Field(default="Property Management API")
    APP_DESCRIPTION: str = Field(
        default=(
            "Backend API for a multi-tenant property-management platform. "
            "Covers unit leasing, room-code tenant onboarding and rent payments."
        )
    )
    APP_VERSION: str = Field(default="0.1.0")

    # CORS
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Comma-separated list or JSON array of allowed origins. Default: *",
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)
    CORS_ALLOW_METHODS: List[str] = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_HEADERS: List[str] = Field(default_factory=lambda: ["*"])

    # Startup behavior
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(
        default=True,
        description="If true, run Alembic migrations (upgrade head) at app startup.",
    )
    AUTO_SEED: bool = Field(
        default=False,
        description="If true, seed a demo owner, building and unit after migrations.",
    )
    SEED_OWNER_EMAIL: str = Field(default="owner@example.com")
    SEED_OWNER_PASSWORD: str = Field(default="change-me-owner")

    # Tokens
    JWT_SECRET_KEY: str = Field(default="change-me", description="HMAC key for signing tokens")
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24)
    REFRESH_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24 * 14)

    # Payment gateway
    STRIPE_SECRET_KEY: Optional[str] = Field(
        default=None, description="Secret API key for the Stripe gateway"
    )
    PAYMENT_CURRENCY: str = Field(default="usd")
    GATEWAY_TIMEOUT_SECONDS: float = Field(default=30.0)
    GATEWAY_MAX_NETWORK_RETRIES: int = Field(
        default=2,
        description="Network retries performed by the gateway client (always with the same idempotency key)",
    )

    # Uniqueness retry budgets for the global code namespaces
    ROOM_CODE_MAX_ATTEMPTS: int = Field(default=10, ge=1)
    REFERENCE_MAX_ATTEMPTS: int = Field(default=10, ge=1)

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Root log level name")

    # Environment label
    ENVIRONMENT: Optional[str] = Field(
        default=None, description="Environment label (dev/test/prod)"
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """
        Accept both JSON array format and comma-separated formats for CORS origins.
        """
        if v is None:
            return ["*"]
        if isinstance(v, str):
            parts = [p.strip() for p in v.split(",") if p.strip()]
            return parts or ["*"]
        if isinstance(v, list):
            return v or ["*"]
        return ["*"]

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("PAYMENT_CURRENCY")
    @classmethod
    def _normalize_currency(cls, v: str) -> str:
        return v.strip().lower()


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """
    Return a new AppSettings instance populated from environment variables.

    Note:
      For simplicity we construct a new instance each time.
    """
    return AppSettings()
