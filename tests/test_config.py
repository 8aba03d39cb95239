from __future__ import annotations

import pytest

from mealmind.config import Settings
from mealmind.db import normalize_database_url
from mealmind.services.entitlements import resolve_entitlements
from mealmind.startup import validate_settings


def test_postgres_urls_use_asyncpg():
    assert normalize_database_url("postgres://u:p@db.internal:5432/app") == (
        "postgresql+asyncpg://u:p@db.internal:5432/app"
    )
    assert normalize_database_url(
        "postgresql://u:p@db.example.com/app?sslmode=REQUIRE&application_name=mealmind"
    ) == "postgresql+asyncpg://u:p@db.example.com/app?application_name=mealmind&ssl=require"


def test_asyncpg_and_sqlite_urls_are_untouched():
    assert normalize_database_url("postgresql+asyncpg://u:p@db/app?ssl=disable") == (
        "postgresql+asyncpg://u:p@db/app?ssl=disable"
    )
    assert normalize_database_url("sqlite+aiosqlite:///./local.db") == "sqlite+aiosqlite:///./local.db"
    assert normalize_database_url(None) is None


def test_csv_settings_are_split():
    settings = Settings(_env_file=None, premium_tiers="premium, family ,", cors_allowed_origins="https://a.test")
    assert settings.premium_tiers == ["premium", "family"]
    assert settings.cors_allowed_origins == ["https://a.test"]


def test_non_dev_requires_database_and_issuer():
    with pytest.raises(RuntimeError) as excinfo:
        validate_settings(Settings(_env_file=None, environment="prod", database_url=None, clerk_issuer=None))
    assert "DATABASE_URL" in str(excinfo.value)
    assert "CLERK_ISSUER" in str(excinfo.value)

    validate_settings(
        Settings(
            _env_file=None,
            environment="prod",
            database_url="postgresql://u:p@db/app",
            auth_disable_verification=True,
        )
    )


def test_dev_only_warns(caplog):
    validate_settings(Settings(_env_file=None, environment="dev", database_url=None))
    assert any("DATABASE_URL" in record.getMessage() for record in caplog.records)


def test_entitlements_follow_configured_tiers():
    settings = Settings(_env_file=None, premium_tiers=["premium", "family"])
    assert resolve_entitlements("Family", settings).max_plan_days == 7
    basic = resolve_entitlements(None, settings)
    assert (basic.tier, basic.max_plan_days, basic.budget_estimates) == ("basic", 3, False)
