"""Centralized application configuration using Pydantic settings."""
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven configuration shared across services."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    database_url: str = Field(
        default="sqlite:///./classroom.db",
        description="SQLAlchemy database URL. Defaults to local SQLite for development.",
    )
    run_db_migrations: bool = Field(
        default=True,
        description="Whether this service should create/update database tables on startup.",
    )
    jwt_secret: str = Field(default="super-secret", description="JWT signing secret")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    access_token_expire_minutes: int = Field(default=60, description="Token lifetime in minutes")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")
    default_rate_limit: str = Field(default="60/minute", description="Global rate limiting rule")
    rate_limiting_enabled: bool = Field(default=True, description="Toggle to disable SlowAPI limits (useful in tests)")
    booking_rate_limit: str = Field(default="20/minute", description="Limit for schedule writes per caller")
    assistant_rate_limit: str = Field(default="10/minute", description="Limit for calls that reach the assistant service")
    log_dir: str = Field(default="logs", description="Directory for per-service audit logs")
    log_level: str = Field(default="INFO", description="Level for the classroom package loggers")

    assistant_api_key: str = Field(default="", description="API key for the text-to-structured-data service")
    assistant_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the generateContent-style assistant API",
    )
    assistant_preferred_models: List[str] = Field(
        default_factory=lambda: ["gemini-1.5-flash", "gemini-1.5-pro", "gemini-pro"],
        description="Model names tried first, in order, when resolving the assistant model",
    )
    assistant_fallback_model: str = Field(default="gemini-pro", description="Model used when listing models fails")
    assistant_model_ttl: int = Field(default=3600, description="Seconds before the resolved model name is looked up again")
    assistant_timeout: float = Field(default=15.0, description="Timeout (s) for assistant HTTP calls")
    assistant_failure_threshold: int = Field(default=5, description="Consecutive failures before the assistant circuit opens")
    assistant_recovery_timeout: int = Field(default=60, description="Seconds the assistant circuit stays open")

    users_service_port: int = 8001
    rooms_service_port: int = 8002
    schedules_service_port: int = 8003
    maintenance_service_port: int = 8004
    assistant_service_port: int = 8005


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of the Settings object."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the cached Settings instance (useful for tests)."""

    get_settings.cache_clear()
