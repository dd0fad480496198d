"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Attributes:
        app_name: Name of the application.
        debug: Enable debug mode.
        database_url: Database connection URL.
        import_max_bytes: Largest accepted import document, in bytes.
        import_caddyfile: Path of a Caddyfile mounted for import at startup.
        import_commit_timeout_seconds: Age after which a commit claim is stale.
        log_level: Root logging level.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "proxyhost-import"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./data/cpm.db"

    # CORS (for the web UI dev server)
    cors_origins: list[str] = ["http://localhost:8080", "http://127.0.0.1:8080"]

    # Import
    import_max_bytes: int = 1024 * 1024
    import_caddyfile: str = ""
    import_commit_timeout_seconds: int = 300


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings.
    """
    return Settings()
