from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables with RESOURCEREST_ prefix."""

    # App
    debug: bool = False
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"
    # Server
    host: str = "127.0.0.1"
    port: int = 3000
    max_content_length: int = 1024 * 1024  # 1 MB
    # Sample data
    seed_sample_data: bool = True

    model_config = SettingsConfigDict(env_prefix="RESOURCEREST_", env_file=".env")


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""
    return Settings()
