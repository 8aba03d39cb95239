from __future__ import annotations

from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List


class Settings(BaseSettings):
    # Core
    app_name: str = Field(default="mealmind-server")
    environment: str = Field(default="dev")  # dev|staging|prod
    log_json: bool = Field(default=True)
    log_level: str = Field(default="INFO")

    # Auth (Clerk)
    clerk_issuer: str | None = Field(default=None)
    clerk_jwks_url: str | None = Field(default=None)
    clerk_audience: str | None = Field(default=None)
    auth_disable_verification: bool = Field(default=False)

    # Data
    database_url: str | None = Field(default=None)

    # API
    cors_allowed_origins: List[str] = Field(default_factory=lambda: ["*"])
    request_max_body_mb: int = Field(default=5)
    plan_generation_rate_limit: str = Field(default="10/minute")

    # Planning
    basic_max_plan_days: int = Field(default=3, ge=1)
    premium_max_plan_days: int = Field(default=7, ge=1)
    premium_tiers: List[str] = Field(default_factory=lambda: ["premium"])
    default_plan_days: int = Field(default=7, ge=1)
    default_meals_per_day: int = Field(default=1, ge=1, le=3)
    default_household_size: int = Field(default=2, ge=1)

    # Shopping list
    plan_read_max_attempts: int = Field(default=3, ge=1, le=10)
    plan_read_backoff_seconds: float = Field(default=0.1, ge=0.0)

    # Observability
    sentry_dsn: str | None = Field(default=None)
    sentry_traces_sample_rate: float = Field(default=0.0)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @field_validator("cors_allowed_origins", "premium_tiers", mode="before")
    @classmethod
    def _csv_to_list(cls, v):
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
