# schedule_admin/config.py
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    ENV: str = "dev"
    APP_NAME: str = "Schedule Admin Capacity Service"

    # DB URL – for now SQLite local
    DATABASE_URL: str = "sqlite:///./schedule_admin.db"

    LOG_LEVEL: str = "INFO"

    # Fallback when a product type has no scheduling threshold configured
    DEFAULT_MINIMUM_DAYS_NOTICE: int = 2

    # Booking grid shows this many consecutive days
    DEFAULT_WINDOW_DAYS: int = 5

    # Suggested slots shown when a product type sets no max_displayed_slots
    DEFAULT_MAX_DISPLAYED_SLOTS: int = 20

    # Half-hour slots generated per day: [start, end)
    BUSINESS_DAY_START: str = "08:00"
    BUSINESS_DAY_END: str = "17:00"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

_settings: Optional[Settings] = None

def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
