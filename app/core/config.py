from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Auth
    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Database
    DATABASE_URL: str = "sqlite:///./guardshift.db"

    # Shift generation
    BUSINESS_TIMEZONE: str = "Asia/Ho_Chi_Minh"
    SHIFT_GENERATION_DEFAULT_DAYS: int = 30
    SHIFT_GENERATION_MAX_DAYS: int = 365
    AUTO_GENERATION_LOOKAHEAD_DAYS: int = 7

    # Events
    SHIFT_EVENTS_WEBHOOK_URL: Optional[str] = None
    SHIFT_EVENTS_TIMEOUT_SECONDS: float = 5.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )


settings = Settings()
