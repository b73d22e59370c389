"""
Application configuration.

Loads settings from environment variables and .env file.
All configuration is centralized here, no scattered magic strings.
"""

from decimal import Decimal
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Attributes:
        project_name: Display name for the API.
        version: Current API version string.
        debug: Enable debug mode. Must be False in production.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        rate_limit_default: Default rate limit for all endpoints.
        rate_limit_heavy: Rate limit for manual sync / tick triggers.
        feed_base_url: Base URL of the liquidity feed.
        gateway_slug: Catalog gateway the feed is synchronized into.
        min_reserve: Minimum reserve on both sides of a kept pair.
        scheduler_batch_size: Maximum due orders executed per tick.
        admin_api_key: Shared secret for admin endpoints. Unset denies access.

    The database URL falls back to a PostgreSQL DSN built from the
    postgres_* values so Docker Compose setups need no extra variable.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    project_name: str = "DCA Sync"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    rate_limit_default: str = "60/minute"
    rate_limit_heavy: str = "10/minute"

    # Database
    database_url: Optional[str] = None
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "dca_db"

    # Liquidity feed / reconciliation
    feed_base_url: str = "https://api3.swopus.com"
    feed_timeout_seconds: float = 15.0
    gateway_slug: str = "swopus"
    sync_interval_minutes: int = 30
    sync_initial_delay_seconds: int = 5
    min_reserve: Decimal = Decimal("1000000")

    # Recurring execution
    scheduler_interval_minutes: int = 60
    scheduler_batch_size: int = 10
    background_jobs_enabled: bool = True

    # Orders
    min_order_amount: Decimal = Decimal("1")
    max_order_amount: Decimal = Decimal("10000")

    admin_api_key: Optional[str] = None

    def get_database_url(self) -> str:
        """Return the effective SQLAlchemy database URL.

        Priority:
        1. Explicit `DATABASE_URL`
        2. Build DSN from postgres_* values (useful for Docker Compose or local setups)
        """
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg2://{self.postgres_user}:{self.postgres_password}@"
            f"{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


settings = Settings()
