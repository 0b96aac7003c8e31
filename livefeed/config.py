from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Shared by the feed service and the polling client.
    """

    # env_file is only used as fallback, env vars take precedence
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./livefeed.db"

    # Logging Configuration
    LOG_LEVEL: str = "INFO"

    # Message limits (characters)
    MAX_BODY_LENGTH: int = 4000
    MAX_AUTHOR_LENGTH: int = 150
    DEFAULT_AUTHOR: str = "Anonymous"

    # Server-side result size cap, applied regardless of requested size
    HARD_CAP: int = 200
    DEFAULT_RECENT_COUNT: int = 50

    # Polling client
    FEED_URL: str = "http://127.0.0.1:8000"
    POLL_INTERVAL_ACTIVE: float = 1.5
    POLL_INTERVAL_BACKGROUND: float = 5.0
    STATS_INTERVAL: float = 7.0
    FETCH_LIMIT: int = 200
    VIEW_CAPACITY: int = 1200
    REQUEST_TIMEOUT: float = 10.0


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every request.
    """
    return Settings()


# Global settings instance
settings = get_settings()
