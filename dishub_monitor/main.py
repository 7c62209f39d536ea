"""
Entry point for the Dishub monitoring backend.

This module creates the FastAPI application, includes all API routers and
runs the optional startup steps (schema creation, migrations, seeding).
Run with:

    uvicorn dishub_monitor.main:app --reload

"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from .api import api_router
from .core.config import env_flag, get_app_env
from .core.db import SessionLocal, engine
from .core.errors import log_exception
from .models import Base
from .scripts.run_migrations import run_migrations_to_head
from .services.auth_seed import seed_admin_user, seed_default_roles
from .services.seed import seed_demo_users, seed_vehicles


def create_app() -> FastAPI:
    app = FastAPI(title="Dishub Vehicle Tax Monitoring", version="0.1.0")
    app.include_router(api_router)

    @app.on_event("startup")
    def _init_db() -> None:
        logger = logging.getLogger("startup")
        env = get_app_env()
        if env_flag("AUTO_CREATE_DB", "true"):
            try:
                Base.metadata.create_all(bind=engine)
            except Exception as exc:
                log_exception(logger, "DB create_all failed", exc=exc)
                if env == "prod":
                    raise
        if env_flag("AUTO_RUN_MIGRATIONS", "false"):
            try:
                run_migrations_to_head()
            except Exception as exc:
                log_exception(logger, "DB migrations failed", exc=exc)
                if env == "prod":
                    raise
        try:
            with SessionLocal() as db:
                seed_default_roles(db)
        except Exception as exc:
            log_exception(logger, "Seed default roles failed", exc=exc)
            if env == "prod":
                raise
        if env_flag("AUTO_SEED_ADMIN_USER", "true"):
            try:
                with SessionLocal() as db:
                    seed_admin_user(db)
            except Exception as exc:
                log_exception(logger, "Seed admin user failed", exc=exc)
                if env == "prod":
                    raise
        if env_flag("AUTO_SEED_DEMO_DATA", "false"):
            try:
                with SessionLocal() as db:
                    seed_demo_users(db)
                    seed_vehicles(db)
            except Exception as exc:
                log_exception(logger, "Seed demo data failed", exc=exc)
                if env == "prod":
                    raise

    return app


app = create_app()
