"""Settings parsing, engine options and log context."""
import logging

from property_api.core.logging import LoggingContextFilter, bind_caller, correlation_id_var
from property_api.core.settings import AppSettings
from property_api.db.config import Settings


def test_postgres_parts_build_async_and_sync_urls():
    s = Settings(
        DATABASE_URL=None,
        POSTGRES_USER="app",
        POSTGRES_PASSWORD="pw",
        POSTGRES_DB="property",
        POSTGRES_HOST="db",
    )
    assert s.async_database_url == "postgresql+asyncpg://app:pw@db:5432/property"
    assert s.sync_database_url == "postgresql://app:pw@db:5432/property"

    options = s.engine_options
    assert options["isolation_level"] == "READ COMMITTED"
    assert options["pool_pre_ping"] is True


def test_sqlite_url_uses_aiosqlite_without_pool_sizing():
    s = Settings(DATABASE_URL="sqlite:///./local.db")
    assert s.is_sqlite
    assert s.async_database_url == "sqlite+aiosqlite:///./local.db"
    assert "pool_size" not in s.engine_options
    assert "isolation_level" not in s.engine_options


def test_app_settings_normalization():
    s = AppSettings(PAYMENT_CURRENCY=" USD ", LOG_LEVEL="debug", CORS_ORIGINS="https://a.example, https://b.example")
    assert s.PAYMENT_CURRENCY == "usd"
    assert s.LOG_LEVEL == "DEBUG"
    assert s.CORS_ORIGINS == ["https://a.example", "https://b.example"]


def test_log_records_carry_request_context():
    record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", None, None)
    token = correlation_id_var.set("corr-1")
    try:
        bind_caller("caller-1")
        LoggingContextFilter().filter(record)
    finally:
        correlation_id_var.reset(token)
        bind_caller(None)
    assert record.correlation_id == "corr-1"
    assert record.caller_id == "caller-1"

    outside = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", None, None)
    LoggingContextFilter().filter(outside)
    assert outside.correlation_id == "-"
