"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CELINE_RECONCILER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service
    service_name: str = "celine-client-reconciler"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Audit
    audit_enabled: bool = True
    audit_json: bool = False  # JSON lines instead of console rendering


settings = Settings()


@lru_cache
def get_settings() -> Settings:
    """Backward-compatible alias for the module-level settings singleton."""
    return settings
