"""
HOPPER Configuration

Values come from the environment or a local .env file. Every field has a
default, so the package imports cleanly in tests and on a bare machine.
"""

from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

STORAGE_BACKENDS = ("mongo", "memory")


class Settings(BaseSettings):

    # Storage
    storage_backend: str = "mongo"
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "hopper"

    # Realtime feed (Redis pub/sub)
    redis_url: str = "redis://localhost:6379/0"
    realtime_enabled: bool = True

    # HTTP
    app_base_url: str = "http://localhost:5173"
    api_v1_str: str = "/api/v1"
    cors_origins: str = "*"
    debug: bool = False
    log_level: str = "INFO"

    # Ride defaults
    default_flexibility_minutes: int = 30
    default_seats_total: int = 4
    max_flexibility_minutes: int = 180

    # Rupees credited to the referrer when a referral completes
    referral_credit: int = 50

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", case_sensitive=False
    )

    @field_validator("storage_backend")
    @classmethod
    def check_storage_backend(cls, value: str) -> str:
        backend = value.strip().lower()
        if backend not in STORAGE_BACKENDS:
            raise ValueError(f"storage_backend must be one of {', '.join(STORAGE_BACKENDS)}")
        return backend

    @property
    def cors_origins_list(self) -> List[str]:
        if self.cors_origins.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
