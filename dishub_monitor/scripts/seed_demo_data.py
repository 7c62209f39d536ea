"""Seed demo data for the Dishub monitoring backend."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dishub_monitor.core.db import SessionContext
from dishub_monitor.services.auth_seed import seed_admin_user, seed_default_roles
from dishub_monitor.services.seed import DEFAULT_SEED_PATH, seed_demo_users, seed_vehicles


logger = logging.getLogger("scripts.seed_demo_data")


def main() -> None:
    logging.basicConfig(level=logging.INFO)

    seed_path = os.getenv("SEED_VEHICLES_PATH")
    vehicles_path = Path(seed_path) if seed_path else DEFAULT_SEED_PATH

    with SessionContext() as db:
        try:
            seed_default_roles(db)
            seed_admin_user(db)
        except Exception as exc:
            logger.warning("Seed roles/admin failed: %s", exc)
        try:
            users = seed_demo_users(db)
            logger.info("Seeded demo users count=%s", users)
        except Exception as exc:
            logger.warning("Seed demo users failed: %s", exc)
        try:
            seed_vehicles(db, vehicles_path)
        except Exception as exc:
            logger.warning("Seed vehicles failed: %s", exc)

    logger.info("Demo seed complete.")


if __name__ == "__main__":
    main()
