"""Configuration management for ztube."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="ZT_", extra="ignore")

    # Database
    database_url: str = "sqlite+aiosqlite:///./ztube.db"

    # Redis (per-channel feed cache)
    redis_url: str = "redis://localhost:6379/0"

    # Feed settings
    feed_ttl_seconds: int = 1800  # 30 minutes
    feed_ttl_splay_max: int = 780  # up to 13 minutes randomized
    source_timeout_seconds: float = Field(default=15.0, gt=0)

    # Content classification
    short_max_seconds: int = Field(default=60, ge=0)
    shorts_lookup_limit: int = Field(default=20, ge=0)

    # Retrieval
    search_limit: int = Field(default=20, ge=1, le=100)
    channel_page_size: int = Field(default=30, ge=1, le=100)
    comments_page_size: int = Field(default=20, ge=1, le=100)
    trending_query: str = "trending"

    # Watch history pagination
    history_page_size_default: int = 50
    history_page_size_max: int = 200

    # Server
    host: str = "127.0.0.1"
    port: int = 3000

    # CORS
    frontend_origin: str = "http://localhost:3000"

    # Environment
    env: str = Field(default="dev", pattern="^(dev|prod)$")
    log_level: str | None = Field(
        default=None, pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$"
    )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
