"""
Shisha Configuration
Core settings for the beneficiary program backend
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Application Info
    APP_NAME: str = "Shisha Program API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./shisha.db"
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20
    SQLITE_BUSY_TIMEOUT: int = 30  # seconds a writer waits for the database lock

    # CORS
    CORS_ORIGINS: list = [
        "http://localhost:8081",  # Expo dev server
        "http://localhost:5000",
    ]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Path = Path("logs")
    LOG_FILE: str = "app.log"
    ERROR_LOG_FILE: str = "error.log"
    LOG_TO_FILE: bool = True

    # Status reconciliation sweep
    STATUS_SWEEP_ENABLED: bool = True
    STATUS_SWEEP_CRON: str = "0 0 * * *"  # every day at midnight
    STATUS_SWEEP_TIMEZONE: str = "Africa/Johannesburg"
    SCHEDULER_POLL_SECONDS: int = 60

    # Quantities are kilograms
    QUANTITY_DECIMAL_PLACES: int = 3

    # Pagination
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # API Configuration
    API_V1_STR: str = "/api/v1"
    DOCS_URL: str = "/docs"
    REDOC_URL: str = "/redoc"
    OPENAPI_URL: str = "/openapi.json"

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalise_log_level(cls, v: str) -> str:
        """Accept lower-case level names from the environment"""
        return v.upper()

    @field_validator("STATUS_SWEEP_CRON")
    @classmethod
    def validate_cron(cls, v: str) -> str:
        """Reject malformed cron expressions at startup rather than at midnight"""
        from croniter import croniter

        if not croniter.is_valid(v):
            raise ValueError(f"Invalid cron expression: {v}")
        return v


# Global settings instance
settings = Settings()
