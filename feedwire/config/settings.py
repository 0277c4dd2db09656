"""
Feedwire Configuration System
============================

Configuration management with environment variables and Pydantic models.
Environment variables override Field defaults with clear precedence.

The feed list is static: it is loaded once at process start and is not
mutable through the engine. Override it with a JSON array in
``FEEDWIRE_FEEDS``.
"""

from pathlib import Path
from typing import List, Optional
from enum import Enum

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from ..database.models import FeedConfig
from ..utils.exceptions import ConfigurationError, ErrorCode


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class IngestionSettings(BaseModel):
    """Feed retrieval and import configuration."""
    request_timeout: int = Field(default=15, ge=1, le=300, description="Feed request timeout in seconds")
    parallel_feeds: int = Field(default=2, ge=1, le=20, description="Feeds processed concurrently in a batch")
    cache_ttl_seconds: int = Field(default=300, ge=0, description="Seconds a fetched document stays fresh (0 disables)")
    max_cache_entries: int = Field(default=50, ge=1, description="Fetched documents kept in memory")
    min_request_interval: float = Field(default=30.0, ge=0.0, description="Minimum seconds between requests to one URL")
    adhoc_max_items: int = Field(default=10, ge=1, le=100, description="Default cap for ad-hoc URL imports")
    max_redirects: int = Field(default=3, ge=0, le=10, description="Redirects followed per feed request")
    user_agent: str = Field(
        default="Feedwire/1.0 (+https://github.com/feedwire/feedwire)",
        description="User-Agent header for feed requests"
    )


class SchedulerSettings(BaseModel):
    """Recurring import configuration."""
    interval_minutes: float = Field(default=60, gt=0, description="Minutes between scheduled batches")
    auto_start: bool = Field(default=False, description="Arm the timer when the service starts")
    max_retries: int = Field(default=3, ge=1, le=10, description="Attempts for a batch that raises")
    retry_delay_seconds: float = Field(default=5.0, ge=0.0, description="Delay between batch attempts")


class DatabaseSettings(BaseModel):
    """Database configuration."""
    path: str = Field(default="data/feedwire.db", description="SQLite database file path")
    pool_size: int = Field(default=5, ge=1, le=20, description="Connection pool size")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/feedwire.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


LOCAL_KEYWORDS = [
    'albuquerque', 'new mexico', 'nm', 'santa fe', 'rio rancho', 'las cruces',
    'bloomfield', 'farmington', 'gallup', 'roswell', 'clovis',
]
EXCLUDE_KEYWORDS = ['advertisement', 'sponsored', 'classifieds', 'obituaries', 'horoscope', 'lottery']
PRIORITY_KEYWORDS = ['breaking', 'alert', 'urgent', 'developing', 'emergency']


def default_feeds() -> List[FeedConfig]:
    """Feeds shipped with the application."""
    return [
        FeedConfig(
            name="KRQE News",
            url="https://www.krqe.com/feed/",
            max_items=20,
            keywords=LOCAL_KEYWORDS,
            exclude_keywords=EXCLUDE_KEYWORDS,
            priority_keywords=PRIORITY_KEYWORDS,
        ),
        FeedConfig(
            name="KOAT News",
            url="https://www.koat.com/topstories-rss",
            max_items=20,
            keywords=LOCAL_KEYWORDS,
            exclude_keywords=EXCLUDE_KEYWORDS,
            priority_keywords=PRIORITY_KEYWORDS,
        ),
        FeedConfig(
            name="News Radio KKOB",
            url="https://newsradiokkob.com/feed",
            max_items=15,
            keywords=LOCAL_KEYWORDS,
            exclude_keywords=EXCLUDE_KEYWORDS,
            priority_keywords=PRIORITY_KEYWORDS,
        ),
    ]


class FeedwireSettings(BaseSettings):
    """Main application settings."""

    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    feeds: List[FeedConfig] = Field(default_factory=default_feeds)

    app_name: str = Field(default="Feedwire", description="Application name")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "FEEDWIRE_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Validate complete configuration."""
        errors = []

        seen = set()
        for feed in self.feeds:
            if feed.name in seen:
                errors.append(f"Duplicate feed name: {feed.name}")
            seen.add(feed.name)

        try:
            db_path = Path(self.database.path)
            db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            errors.append(f"Invalid database path: {e}")

        if self.logging.file_path:
            try:
                log_path = Path(self.logging.file_path)
                log_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid log file path: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> FeedwireSettings:
    """Load settings from environment variables and defaults.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        settings = FeedwireSettings()
        settings.validate_configuration()
        return settings

    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID
        ) from e


_settings: Optional[FeedwireSettings] = None


def get_settings(reload: bool = False) -> FeedwireSettings:
    """Get global settings instance.

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
