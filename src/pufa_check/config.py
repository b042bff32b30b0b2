"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from pufa_check.adapters.off_client import DEFAULT_USER_AGENT

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    storage_backend: str = "file"
    storage_path: str = ".pufa_check/history.json"
    storage_key: str = "pufa_check:history"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    supabase_table: str = "kv_store"
    history_limit: int = 200
    lookup_timeout_seconds: float = 6.0
    user_agent: str = DEFAULT_USER_AGENT
    strict_lookup_status: bool = False
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_prefix="PUFA_",
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
