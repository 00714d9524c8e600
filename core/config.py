"""
Application configuration using Pydantic Settings
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Upstream universities API
    UNIVERSITIES_API_URL: str = "http://universities.hipolabs.com/search?country=United+States"
    API_TIMEOUT: float = 30.0  # seconds
    RETRY_ATTEMPTS: int = 3
    RETRY_DELAY_MS: float = 1000.0
    MAX_RETRY_DELAY_MS: float = 10000.0

    # Storage
    DATA_DIR: str = "./data"
    JSON_FILE: str = "universities.json"
    CSV_FILE: str = "universities.csv"
    BACKUP_DIR: str = "./data/backups"
    BACKUP_RETENTION: int = 30  # 0 keeps every backup

    # Scheduler
    SCHEDULER_CRON: str = "0 0 * * *"  # midnight
    SCHEDULER_TIMEZONE: str = "UTC"
    SCHEDULER_AUTOSTART: bool = True
    HISTORY_LIMIT: int = 10
    STATUS_HISTORY_LIMIT: int = 5

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
