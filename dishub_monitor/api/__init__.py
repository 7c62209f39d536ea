"""
API package for the Dishub monitoring backend.

This package aggregates all API routers to be included in the FastAPI
application. Every route lives under ``/api``; permission checks are
attached per route, only login and registration are public.
"""

from fastapi import APIRouter

from .v1.activity import router as activity_router
from .v1.auth import router as auth_router
from .v1.reports import router as reports_router
from .v1.roles import router as roles_router
from .v1.scans import router as scans_router
from .v1.statistics import router as statistics_router
from .v1.users import router as users_router
from .v1.vehicles import router as vehicles_router


api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(vehicles_router)
api_router.include_router(scans_router)
api_router.include_router(statistics_router)
api_router.include_router(reports_router)
api_router.include_router(activity_router)
api_router.include_router(users_router)
api_router.include_router(roles_router)
