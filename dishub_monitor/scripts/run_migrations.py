"""
Bring the database schema to the latest Alembic revision.

Databases first built by ``create_all()`` (the default startup path) have
every table but no ``alembic_version``; they are stamped at the initial
revision before upgrading so the first migration is not replayed.

Usage:
    python -m dishub_monitor.scripts.run_migrations
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from ..core.config import settings
from ..models import Base


BASELINE_REVISION = "20260301_01"
PROJECT_ROOT = Path(__file__).resolve().parents[2]

logger = logging.getLogger("migrations")


def _alembic_config(database_url: str) -> Config:
    ini_path = PROJECT_ROOT / "alembic.ini"
    if not ini_path.exists():
        raise FileNotFoundError(f"alembic.ini not found at {ini_path}")
    cfg = Config(str(ini_path))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    cfg.attributes["database_url"] = database_url
    return cfg


def _unversioned_schema(database_url: str) -> bool:
    engine = create_engine(database_url)
    try:
        existing = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    if "alembic_version" in existing:
        return False
    return bool(existing & set(Base.metadata.tables))


def run_migrations_to_head(database_url: Optional[str] = None) -> None:
    url = database_url or settings.database_url
    cfg = _alembic_config(url)
    if _unversioned_schema(url):
        logger.info("Stamping unversioned schema at %s", BASELINE_REVISION)
        command.stamp(cfg, BASELINE_REVISION)
    command.upgrade(cfg, "head")


def main() -> int:
    logging.basicConfig(level=logging.INFO)
    try:
        run_migrations_to_head()
    except Exception as exc:
        logger.error("Migration failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
