"""
Database engine construction and schema bootstrap.
"""

import logging
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.infrastructure.persistence.tables import metadata

logger = logging.getLogger(__name__)


def create_db_engine(url: str) -> Engine:
    """Build a SQLAlchemy engine for ``url``.

    In-memory SQLite gets a single shared connection so every thread
    (request handlers, background jobs) sees the same database.
    """
    if url.startswith("sqlite") and ":memory:" in url:
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, pool_pre_ping=True)


def ensure_schema(engine: Engine) -> None:
    """Create missing tables and indexes (idempotent)."""
    metadata.create_all(engine)
    logger.info("Database tables verified/created.")


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Return the process-wide engine built from application settings."""
    return create_db_engine(settings.get_database_url())
