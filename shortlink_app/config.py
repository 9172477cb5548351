from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
import string


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Environment
    environment: str = "development"
    debug: bool = False

    # Application
    app_name: str = "Short Link Service"
    app_version: str = "1.0.0"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    workers: int = 1

    # Database
    database_url: str = "sqlite:///./shortlinks.db"
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30  # Seconds to wait for a pooled connection
    db_busy_timeout: int = 30  # SQLite only: seconds a writer waits for the lock
    db_echo: bool = False

    # Short link generation
    base_url: str = "http://127.0.0.1:8000"
    id_length: int = 6
    id_alphabet: str = string.ascii_letters + string.digits

    # Collision retry policy
    id_max_attempts: Optional[int] = 10  # None = retry until an id sticks
    id_grow_after: int = 3  # Add one character after this many collisions (0 = never)
    id_retry_backoff: float = 0.0  # Base seconds for exponential backoff
    id_retry_max_backoff: float = 1.0

    # Cache settings
    cache_backend: str = "memory"  # Options: "redis", "memory", "null"
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl: int = 3600  # Cache TTL in seconds (1 hour)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_json: bool = False

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
