"""Configuration module for the reminder core.

This module provides configuration settings using Pydantic Settings.
Environment variables can be used to override default values.
"""

import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings for the reminder core.

    All settings can be overridden via environment variables.
    Example: export DATABASE_URL="sqlite:////data/reminders.db"
    """

    # Durable Storage Configuration
    DATABASE_URL: str = "sqlite:///./reminders.db"
    """Key-value store URL. Default: SQLite file in current directory"""

    ALARMS_KEY: str = "alarms"
    """Durable key holding the alarm collection"""

    BATTERY_KEY: str = "batteryReminders"
    """Durable key holding the battery reminder collection"""

    LOCATION_KEY: str = "reminders"
    """Durable key holding the location reminder collection"""

    # General Configuration
    TIMEZONE: str = "UTC"
    """Timezone used when legacy alarm datetimes are reduced to a time of day"""

    # Expiry Configuration
    LOCATION_EXPIRY_SECONDS: float = 5.0
    """Delay before a completed location reminder is removed"""

    # Location Configuration
    UNKNOWN_PLACE_NAME: str = "Unknown location"
    """Place name used when reverse geocoding gives no answer"""

    # Logging Configuration
    LOG_DIR: str = os.path.join(os.path.dirname(os.path.abspath(__file__)), "logs")
    """Directory for rotating log files"""

    LOG_LEVEL: str = "INFO"
    """Level applied to every reminder core logger"""

    @field_validator("TIMEZONE")
    @classmethod
    def timezone_exists(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone '{value}'") from e
        return value

    class Config:
        """Pydantic config"""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Global settings instance
settings = Settings()
