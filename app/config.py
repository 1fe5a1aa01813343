from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./jobs.db"

    # Database Connection Pool Settings (ignored for SQLite)
    DB_POOL_SIZE: int = 10  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 20  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # App Settings
    APP_NAME: str = "Sync Job Scheduler"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # CORS - accepts JSON string, comma-separated, or list
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Scheduler Settings
    SCHEDULER_ENABLED: bool = True  # Start timers and queue processor on app startup
    SCHEDULER_TIMEZONE: str = "UTC"
    DEFAULT_ACTIVE_JOB_TYPE: str = "customer_sync"  # Only schedule active after seeding/reset
    QUEUE_KICK_INTERVAL_SECONDS: int = 30  # Safety-net wake-up for the drain loop
    JOB_EXECUTION_TIMEOUT_SECONDS: float = 300.0  # Per-attempt executor deadline
    JOB_STATUS_DEFAULT_LIMIT: int = 50  # Run history rows returned by default

    # Notifications
    JOB_NOTIFICATIONS_ENABLED: bool = True  # Persist a notification per completed job

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',')]
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        return list(self.CORS_ORIGINS)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
