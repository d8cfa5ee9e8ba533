"""Shared configuration for all services."""
from typing import List
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # MongoDB Configuration
    mongo_url: str = "mongodb://localhost:27017"
    mongo_db_name: str = "publishing_platform"

    # Redis Configuration
    redis_url: str = "redis://localhost:6379"
    redis_event_channel: str = "article_events"
    redis_user_channel_prefix: str = "user_events"

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False
    log_level: str = "INFO"

    # Scheduler Configuration
    scheduler_enabled: bool = True
    scheduler_interval: float = 60.0  # seconds
    scheduler_article_timeout: float = 30.0

    # Notification Configuration
    fanout_timeout: float = 10.0
    notification_retention_days: int = 30
    notification_cleanup_interval: float = 86400.0
    default_locale: str = "en"
    supported_locales: List[str] = ["en", "np"]

    # WebSocket Configuration
    ws_heartbeat_interval: int = 30

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
