"""
Database session management for the Dishub monitoring backend.

PostgreSQL in deployment; SQLite is accepted for tests and local demos,
in which case the connection pool sizing knobs are skipped.
"""

from __future__ import annotations

import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from .config import settings


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except Exception:
        return default


def _engine_options(url: str) -> dict:
    options = {"echo": False, "future": True, "pool_pre_ping": True}
    if url.startswith("sqlite"):
        # SQLite pools do not take the sizing knobs below.
        options["connect_args"] = {"check_same_thread": False}
        return options
    options.update(
        pool_size=_env_int("DB_POOL_SIZE", 5),
        max_overflow=_env_int("DB_MAX_OVERFLOW", 10),
        pool_recycle=_env_int("DB_POOL_RECYCLE_SEC", 1800),
        pool_timeout=_env_int("DB_POOL_TIMEOUT_SEC", 30),
    )
    return options


# Create SQLAlchemy engine
engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

# Create a configured session factory
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


def get_db():
    """Yield a database session for FastAPI dependencies."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class SessionContext:
    """Session for scripts and startup hooks; rolls back if the block raises."""

    def __enter__(self):
        self.db = SessionLocal()
        return self.db

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.db.rollback()
        self.db.close()
