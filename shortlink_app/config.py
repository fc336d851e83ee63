from datetime import timedelta
from typing import Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


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
    debug: bool = True
    log_level: str = "INFO"

    # Application
    app_name: str = "Shortlink Service"
    app_version: str = "1.0.0"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Database
    database_url: str = "sqlite:///./shortlink.db"

    # URL Shortener specific
    base_url: str = "http://127.0.0.1:8000"
    short_url_length: int = 5  # Max 5 characters for short codes
    max_retries: int = 5

    # Short code generation strategy
    short_code_strategy: str = "base62"  # Options: "random", "base62"
    short_code_salt: int = 1256  # Salt for Base62 strategy (4 digits)

    # Redirect cache settings
    cache_backend: str = "memory"  # Options: "redis", "memory", "null"
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl: int = 3600  # Cache TTL in seconds (1 hour)

    # Click tracking: redirects publish, a background worker stores
    click_tracking_enabled: bool = True
    queue_backend: str = "memory"  # Options: "redis_streams", "memory"
    queue_name: str = "url_clicks"
    queue_consumer_group: str = "click_workers"
    queue_max_length: int = 10000  # Clicks beyond this are dropped, not waited on
    click_batch_size: int = 100
    click_poll_interval: float = 1.0  # Seconds the worker sleeps on an empty queue
    country_header: str = "CF-IPCountry"  # Set by the proxy in front of the app

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


class StatusCheckerSettings(BaseSettings):
    """
    Settings for the destination status checker.

    Read from STATUS_CHECKER_* variables, e.g. STATUS_CHECKER_ENABLED=true or
    STATUS_CHECKER_POLL_INTERVAL=300. Durations accept seconds or ISO 8601
    ("PT5M"). Loaded separately from Settings so a bad value here only keeps
    the checker from starting.
    """

    enabled: bool = False
    poll_interval: timedelta = timedelta(minutes=5)

    # Re-check cadence for URLs not marked gone / marked gone
    alive_recheck_interval: timedelta = timedelta(hours=6)
    gone_recheck_interval: timedelta = timedelta(hours=24)

    batch_size: int = 100
    concurrency: int = 5

    archive_lookup_enabled: bool = True
    archive_recheck_interval: timedelta = timedelta(days=7)
    archive_concurrency: Optional[int] = None  # None means same as concurrency
    archive_endpoint: str = "https://archive.org/wayback/available"

    # Outbound requests
    probe_timeout: float = 10.0
    archive_timeout: float = 10.0
    max_redirects: int = 0  # 0 records the first response, 3xx included
    user_agent: str = "shortlink-status-checker/1.0"

    model_config = SettingsConfigDict(
        env_prefix="STATUS_CHECKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator(
        "poll_interval",
        "alive_recheck_interval",
        "gone_recheck_interval",
        "archive_recheck_interval",
    )
    @classmethod
    def _positive_interval(cls, value: timedelta) -> timedelta:
        if value <= timedelta(0):
            raise ValueError("interval must be greater than zero")
        return value

    @field_validator("batch_size", "concurrency", "archive_concurrency")
    @classmethod
    def _positive_count(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("probe_timeout", "archive_timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be greater than zero")
        return value

    @field_validator("max_redirects")
    @classmethod
    def _non_negative_redirects(cls, value: int) -> int:
        if value < 0:
            raise ValueError("max_redirects cannot be negative")
        return value

    @model_validator(mode="after")
    def _default_archive_concurrency(self) -> "StatusCheckerSettings":
        if self.archive_concurrency is None:
            self.archive_concurrency = self.concurrency
        return self


# Create settings instance
settings = Settings()
