"""
Configuration settings for the Quota Engine.
All deployment-specific values are loaded from environment variables.
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Quota Engine"
    debug: bool = False
    environment: str = "production"

    # Database
    database_url: str = ""
    database_echo: bool = False
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_pool_recycle: int = 3600

    # Cache
    redis_url: str = ""
    analytics_cache_backend: str = "memory"
    analytics_cache_ttl: int = 60

    # Scheduler
    timezone: str = "Asia/Taipei"
    daily_analytics_hour: int = 0
    daily_analytics_minute: int = 5

    # Analytics limits
    active_task_statuses: List[str] = Field(default_factory=lambda: ["pending", "in_progress"])
    max_range_days: int = 366
    max_window_days: int = 365

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the application settings."""
    return settings
