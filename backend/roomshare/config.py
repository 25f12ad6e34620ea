"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets and deployment URLs come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all settings: works out-of-the-box with docker-compose
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://roomshare:roomshare@db:5432/roomshare"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres provides postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10
    # Local SQLite runs have no migration step
    database_create_all: bool = False

    # Object storage
    storage_root: str = "./storage"
    storage_bucket: str = "uploads"
    public_base_url: str = "http://localhost:8000"
    max_upload_bytes: int = 50 * 1024 * 1024

    # Client-local state (navigation ledger files)
    local_state_dir: str = "./.roomshare"

    # Join codes
    join_code_length: int = Field(6, ge=4, le=12)
    join_code_probe_attempts: int = Field(3, ge=1)
    room_create_attempts: int = Field(3, ge=1)

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
