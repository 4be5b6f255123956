"""Unit tests that do not require a running API or external services."""
import json
import logging

import pytest
from pydantic import ValidationError

from app.config import Settings, settings
from app.core.logging import CustomJsonFormatter
from app.database import normalize_database_url


def test_settings_load():
    """Settings load from environment (e.g. CI env vars)."""
    assert settings.API_PREFIX == "/api"
    assert settings.APP_NAME == "Retail Billing Backend"
    assert settings.BILLING_DAY_OF_MONTH == 11
    assert settings.SUBSCRIPTION_BILL_DUE_DAYS == 15


def test_environment_flag():
    """Environment flags reflect ENVIRONMENT value."""
    assert settings.ENVIRONMENT.lower() in ("development", "test", "production")
    assert settings.is_development == (settings.ENVIRONMENT.lower() == "development")
    assert settings.is_production == (settings.ENVIRONMENT.lower() == "production")


def test_comma_lists_are_split():
    s = Settings(ALLOWED_ORIGINS="http://a.test, http://b.test", ALLOWED_METHODS="GET,POST")
    assert s.ALLOWED_ORIGINS == ["http://a.test", "http://b.test"]
    assert s.ALLOWED_METHODS == ["GET", "POST"]


@pytest.mark.parametrize(
    "field,value",
    [
        ("BILLING_DAY_OF_MONTH", 29),
        ("BILLING_DAY_OF_MONTH", 0),
        ("OVERDUE_CHECK_HOUR", 24),
        ("EXPIRY_CHECK_INTERVAL_HOURS", 0),
    ],
)
def test_scheduler_settings_are_bounded(field, value):
    with pytest.raises(ValidationError):
        Settings(**{field: value})


def test_postgres_url_uses_asyncpg():
    url, connect_args = normalize_database_url("postgresql://u:p@db:5432/billing")
    assert url == "postgresql+asyncpg://u:p@db:5432/billing"
    assert connect_args == {}


def test_sslmode_becomes_ssl_context():
    url, connect_args = normalize_database_url("postgresql://u:p@db:5432/billing?sslmode=require")
    assert url == "postgresql+asyncpg://u:p@db:5432/billing"
    assert "ssl" in connect_args


def test_sqlite_url_untouched():
    url, connect_args = normalize_database_url("sqlite+aiosqlite:///./local.db")
    assert url == "sqlite+aiosqlite:///./local.db"
    assert connect_args == {}


def test_json_log_record_carries_service_fields():
    formatter = CustomJsonFormatter(fmt="%(asctime)s %(level)s %(name)s %(message)s")
    record = logging.LogRecord("app.core.scheduler", logging.INFO, __file__, 1, "Job finished", None, None)
    record.job = "overdue_check"
    record.correlation_id = "req-42"

    body = json.loads(formatter.format(record))
    assert body["message"] == "Job finished"
    assert body["level"] == "INFO"
    assert body["logger"] == "app.core.scheduler"
    assert body["app_name"] == settings.APP_NAME
    assert body["environment"] == settings.ENVIRONMENT
    assert body["job"] == "overdue_check"
    assert body["correlation_id"] == "req-42"
