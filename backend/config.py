"""Application configuration module."""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # Database settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./exam_engine.db"
    SQL_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    LOG_FILE: Optional[str] = None

    # Engine settings
    EXAM_CONFIG_PATH: Optional[str] = None

    # API settings
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Adaptive Exam Engine"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


# Create global settings instance
settings = Settings()
