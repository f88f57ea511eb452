from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import ConfigDict

from notify_worker.constants import LINE_GROUP_CHANNEL
from notify_worker.core.errors import ConfigurationError


class Settings(BaseSettings):
    API_V1_STR: str = "/api/v1"
    VERSION: str = "0.1.0"
    PROJECT_NAME: str = "ticket_notify_worker"

    DEBUG: bool = False

    # Database settings (DSN without scheme, or a full SQLAlchemy URL)
    DB_URL: Optional[str] = None

    # LINE Messaging API
    LINE_CHANNEL_ACCESS_TOKEN: Optional[str] = None
    LINE_GROUP_ID: Optional[str] = None
    LINE_API_URL: str = "https://api.line.me/v2/bot/message/push"
    LINE_PUSH_TIMEOUT: float = 10.0

    # Shared secret expected in the x-worker-secret header (disabled when empty)
    LINE_WORKER_SECRET: Optional[str] = None

    # Used to build "Open:" deep links in messages
    APP_BASE_URL: Optional[str] = None

    # Worker Configuration
    NOTIFY_CHANNEL: str = LINE_GROUP_CHANNEL
    DEFAULT_BATCH_SIZE: int = 20
    POLL_INTERVAL: float = 0.0
    STALE_PROCESSING_MINUTES: int = 30

    # Application
    ENVIRONMENT: str = "development"
    LOG_DIR: str = "logs"

    # CORS settings
    CORS_ORIGINS: List[str] = ["*"]
    CORS_METHODS: List[str] = ["POST", "OPTIONS"]
    CORS_HEADERS: List[str] = [
        "authorization",
        "x-client-info",
        "apikey",
        "content-type",
        "x-worker-secret",
    ]

    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def async_database_url(self) -> Optional[str]:
        """Async SQLAlchemy URL; bare DSNs are treated as asyncpg targets."""
        db_url = (self.DB_URL or "").strip()
        if not db_url:
            return None
        if "://" in db_url:
            return db_url
        return f"postgresql+asyncpg://{db_url}"

    @property
    def worker_secret(self) -> Optional[str]:
        secret = (self.LINE_WORKER_SECRET or "").strip()
        return secret or None

    @property
    def app_base_url(self) -> Optional[str]:
        base_url = (self.APP_BASE_URL or "").strip()
        return base_url or None

    def validate_for_dispatch(self) -> None:
        """
        Check that everything a dispatch run needs is configured.

        Raises:
            ConfigurationError: database or LINE settings are missing
        """
        if not self.async_database_url:
            raise ConfigurationError("Database env missing (DB_URL)")

        if not (self.LINE_CHANNEL_ACCESS_TOKEN or "").strip() or not (self.LINE_GROUP_ID or "").strip():
            raise ConfigurationError(
                "LINE config missing (LINE_CHANNEL_ACCESS_TOKEN / LINE_GROUP_ID)"
            )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
