"""Application configuration from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = Field(
        default="sqlite:///./copro.db",
        description="SQLAlchemy database URL",
    )
    database_echo: bool = Field(default=False, description="Log SQL queries")

    # Billing policy
    due_date_offset_days: int = Field(
        default=0,
        ge=0,
        description="Days between the start of a billing period and the due date of its calls",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/server.log", description="Server log file path")

    # API
    api_title: str = Field(default="Copro API", description="API title")
    api_version: str = Field(default="0.1.0", description="API version")


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
