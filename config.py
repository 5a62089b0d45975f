"""
Configuration management for Auralyst
"""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Auralyst"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENV: str = "development"

    # API
    API_PREFIX: str = "/api/v1"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite:///./auralyst.db"
    DATABASE_ECHO: bool = False

    # Calendar
    DEFAULT_TIMEZONE: str = "UTC"  # Used when a schedule or request carries no zone

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Recurrence / analytics constants
class EngineConfig:
    """Tunables for the medication recurrence and analytics engine"""

    # Intake matching
    INTAKE_MATCH_TOLERANCE_MINUTES: int = 15

    # Medications without persisted schedules are treated as a daily dose at this time
    SYNTHETIC_SCHEDULE_HOUR: int = 8
    SYNTHETIC_SCHEDULE_MINUTE: int = 0

    # A weekly/custom schedule with no weekday bits set occurs every day
    EMPTY_WEEKDAY_MASK_MATCHES_ALL: bool = True

    # Trend correlation
    EFFECT_MIN_DELTA: float = 0.1
    EFFECT_INSIGHT_DELTA: float = 1.0
    MENSTRUATION_STABLE_DELTA: float = 0.1
    MENSTRUATION_INSIGHT_DELTA: float = 0.5
    MORNING_START_HOUR: int = 5
    MORNING_END_HOUR: int = 11  # exclusive
    HIGH_SEVERITY: float = 7.0
    MORNING_INSIGHT_MIN_COUNT: int = 3

    # Sentiment tone cut-offs
    SENTIMENT_POSITIVE: float = 0.4
    SENTIMENT_CONCERNING: float = -0.1

    # Display
    DOSE_DECIMAL_PLACES: int = 2


# Database table names
class TableNames:
    JOURNALS = "journals"
    MEDICATIONS = "medications"
    SCHEDULES = "medication_schedules"
    INTAKES = "medication_intakes"
    ENTRIES = "symptom_entries"
    NOTES = "collaborator_notes"


settings = get_settings()
engine_config = EngineConfig()
