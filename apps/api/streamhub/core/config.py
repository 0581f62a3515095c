"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    auth_provider: Literal["mock", "firebase"] = "firebase"
    firebase_project_id: str | None = None
    firebase_audience: str | None = None
    callback_secret: str

    store_backend: Literal["memory", "sqlite"] = "memory"
    sqlite_path: str = "streamhub.db"
    sqlite_timeout_seconds: float = 5.0

    queue_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    queue_timeout_seconds: float = 5.0

    storage_backend: Literal["memory", "r2"] = "memory"
    r2_endpoint: str | None = None
    r2_access_key_id: str | None = None
    r2_secret_access_key: str | None = None
    r2_bucket: str = "streamhub-media"
    r2_public_url: str = "https://media.local"

    stale_processing_seconds: int = 6 * 60 * 60
    stranded_upload_seconds: int = 15 * 60
    reclaim_processing_seconds: int = 30 * 60

    model_config = SettingsConfigDict(env_prefix="STREAMHUB_", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
