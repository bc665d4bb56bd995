"""Process settings pulled from the environment."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="WORLDGEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (json or console)")

    # Map Generation Configuration
    max_plot_count: int = Field(default=200000, ge=3, description="Max allowed plot count")


def get_settings() -> Settings:
    """Read settings from the current environment."""
    return Settings()
