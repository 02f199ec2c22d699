# app/core/config.py
# All application settings loaded from environment variables / .env file
# In production: values come from the deployment's secret store via env injection
# In development: loaded from .env file via python-dotenv

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Single source of truth for all TutorMatch configuration.
    pydantic-settings automatically reads from environment variables.
    Variable names are case-insensitive.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown env vars
    )

    # App
    app_env: str = "development"
    app_name: str = "TutorMatch"
    app_version: str = "1.0.0"
    debug: bool = False
    auto_migrate_on_startup: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: str = "http://localhost:3000,http://localhost:8000"

    # Database
    database_url: str = "sqlite:///./tutormatch.db"

    # Redis (outbox fan-out channel)
    redis_url: str = "redis://localhost:6379/0"
    outbox_channel: str = "tutormatch.workflow-events"

    # JWT (tokens are issued by the identity service, verified here)
    jwt_secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Wall-clock zone for demo / class schedules
    timezone: str = "Asia/Kolkata"

    # Workflow
    workflow_max_retries: int = 3
    outbox_write_attempts: int = 3
    outbox_relay_batch_size: int = 100

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def cors_origins(self) -> List[str]:
        """Parse comma-separated ALLOWED_ORIGINS into a list."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """
    Returns a cached Settings instance.
    Use as a FastAPI dependency: settings = Depends(get_settings)
    Or import directly:         from app.core.config import settings
    """
    return Settings()


# Module-level singleton -- import this directly in most places
settings = get_settings()
