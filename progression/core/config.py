"""
Centralized configuration management with validation.

All environment variables are loaded and validated here.
This keeps engine tunables consistent across every host that embeds it.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Engine settings with validation."""

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PROGRESSION_",
        case_sensitive=True,
        extra="ignore"
    )

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")  # json or text

    # Environment
    ENVIRONMENT: str = Field(default="development")

    # Stat arithmetic is done in decimal and quantized to this many places.
    # Receipts and ledger values share the same grid so reversal is exact.
    STAT_DECIMAL_PLACES: int = Field(default=9, ge=2, le=12)

    # Upper bound for a single logged activity (24 hours).
    MAX_ACTIVITY_MINUTES: int = Field(default=1440, ge=1, le=1440)

    # Used when a caller does not pass an explicit weekend preference.
    DEFAULT_RELAXED_WEEKEND_MODE: bool = Field(default=False)


# Global settings instance
settings = Settings()
