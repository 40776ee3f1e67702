from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from firemap.core.config import settings


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """
    Process-wide engine with connection pooling.

    Created on first use so importing the app does not require a database.
    """
    if not settings.DATABASE_URL:
        raise RuntimeError("DATABASE_URL is not configured")

    return create_engine(
        settings.DATABASE_URL,
        pool_pre_ping=settings.DB_POOL_PRE_PING,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        echo=settings.DEBUG,  # Log SQL queries in debug mode
    )
