"""Application configuration management."""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

# Load environment variables from project-level .env if available
PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=PROJECT_ROOT / ".env")


class Settings:
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = os.getenv("APP_NAME", "FM Station Tracker")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    environment: str = os.getenv("ENVIRONMENT", "development")
    debug: bool = os.getenv("DEBUG", "False") == "True"

    # Server
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))
    reload: bool = os.getenv("RELOAD", "True") == "True"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./fm_stations.db")
    seed_on_startup: bool = os.getenv("SEED_ON_STARTUP", "False") == "True"

    # Station API client
    api_base_url: str = os.getenv("API_BASE_URL", "http://localhost:8000")
    request_timeout_seconds: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "10"))

    # Working copy / update flow
    distance_cache_size: int = int(os.getenv("DISTANCE_CACHE_SIZE", "1000"))
    recent_window_seconds: int = int(os.getenv("RECENT_WINDOW_SECONDS", "10"))
    poll_interval_seconds: float = float(os.getenv("POLL_INTERVAL_SECONDS", "5"))
    optimistic_rollback: bool = os.getenv("OPTIMISTIC_ROLLBACK", "False") == "True"
    popup_page_size: int = int(os.getenv("POPUP_PAGE_SIZE", "3"))

    # Fallback viewpoint when geolocation is unavailable (Bangkok)
    default_latitude: float = float(os.getenv("DEFAULT_LATITUDE", "13.7563"))
    default_longitude: float = float(os.getenv("DEFAULT_LONGITUDE", "100.5018"))
    default_accuracy: float = float(os.getenv("DEFAULT_ACCURACY", "1000"))

    # CORS
    cors_origins: List[str] = [
        origin.strip()
        for origin in os.getenv(
            "CORS_ALLOW_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,http://localhost:8000",
        ).split(",")
        if origin.strip()
    ]
    cors_allow_credentials: bool = True

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_format: str = os.getenv("LOG_FORMAT", "json")
    centralized_logging_enabled: bool = os.getenv("CENTRALIZED_LOGGING_ENABLED", "False") == "True"
    centralized_log_level: str = os.getenv("CENTRALIZED_LOG_LEVEL", "WARNING")
    centralized_log_queue_size: int = int(os.getenv("CENTRALIZED_LOG_QUEUE_SIZE", "1000"))

    # Security
    system_api_token: str = os.getenv("SYSTEM_API_TOKEN", "")
    api_key_header: str = os.getenv("API_KEY_HEADER", "X-API-Key")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"


# Global settings instance
settings = Settings()
