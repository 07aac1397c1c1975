"""Application configuration."""

import os
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # POS REST API
    pos_api_url: str = os.getenv("POS_API_URL", "http://localhost:5000/api")
    pos_api_token: str = os.getenv("POS_API_TOKEN", "")
    store_id: Optional[str] = os.getenv("STORE_ID") or None
    request_timeout: float = float(os.getenv("REQUEST_TIMEOUT", "10"))

    # Local goal cache
    cache_db_path: str = os.getenv("CACHE_DB_PATH", "data/goal_cache.db")

    # Goal tracking
    goal_poll_interval: int = int(
        os.getenv("GOAL_POLL_INTERVAL", "1800")
    )  # 30 minutes between progress re-evaluations
    currency_symbol: str = os.getenv("CURRENCY_SYMBOL", "₺")

    # Notifications
    notify_webhook_url: Optional[str] = os.getenv("NOTIFY_WEBHOOK_URL") or None

    # Server
    server_host: str = os.getenv("SERVER_HOST", "0.0.0.0")
    server_port: int = int(os.getenv("SERVER_PORT", "8000"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    class Config:
        """Pydantic config."""

        env_file = ".env"
        case_sensitive = False


settings = Settings()
