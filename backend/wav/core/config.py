"""
Application configuration settings.

All configuration is loaded from environment variables with sensible defaults.
Game-balance constants are not configurable and live in wav.core.constants.
"""
import json
from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "WAV"
    api_debug: bool = True

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = ["http://localhost:3000"]

    # Database
    postgres_host: str = "db"
    postgres_port: int = 5432
    postgres_user: str = "wav_user"
    postgres_password: str = "wav_password"
    postgres_db: str = "wav"
    database_url: str | None = None
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_statement_timeout_ms: int = 15000

    # Logging
    log_level: str | None = None
    log_json: bool | None = None

    # Tokens are issued by the external auth provider; we only verify them
    auth_jwt_secret: str = "dev-auth-secret-change-in-production"
    auth_jwt_algorithm: str = "HS256"
    auth_jwt_audience: str | None = "authenticated"

    # Track catalog (Spotify Web API)
    spotify_client_id: str = ""
    spotify_client_secret: str = ""
    spotify_api_url: str = "https://api.spotify.com/v1"
    spotify_accounts_url: str = "https://accounts.spotify.com/api/token"
    spotify_market: str = "US"
    catalog_timeout_seconds: float = 10.0

    # Analytics
    daily_stats_retention_days: int = 30
    leaderboard_default_limit: int = 10

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> list[str]:
        """Parse CORS origins from JSON string or list."""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [v]
        return v

    @property
    def database_url_computed(self) -> str:
        """Compute database URL from components if not explicitly set."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def catalog_configured(self) -> bool:
        return bool(self.spotify_client_id and self.spotify_client_secret)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()

    if not settings.api_debug and settings.auth_jwt_secret == "dev-auth-secret-change-in-production":
        import warnings
        warnings.warn(
            "SECURITY WARNING: Using default auth_jwt_secret in production! "
            "Set AUTH_JWT_SECRET to the auth provider's signing secret.",
            UserWarning
        )

    return settings


settings = get_settings()
