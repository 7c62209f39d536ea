"""
Dashboard and analytics endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.auth import require_permission
from ...core.db import get_db
from ...services import statistics


router = APIRouter(
    prefix="/api/statistics",
    tags=["statistics"],
    dependencies=[Depends(require_permission("view"))],
)


@router.get("/dashboard")
def dashboard(db: Session = Depends(get_db)) -> dict:
    return statistics.dashboard(db)


@router.get("/vehicle-types")
def vehicle_types(db: Session = Depends(get_db)) -> list[dict]:
    return statistics.vehicle_types(db)


@router.get("/tax-compliance")
def tax_compliance(db: Session = Depends(get_db)) -> dict:
    return statistics.tax_compliance(db)


@router.get("/weekly-trends")
def weekly_trends(db: Session = Depends(get_db)) -> list[dict]:
    return statistics.weekly_trends(db)


@router.get("/activity-heatmap")
def activity_heatmap(db: Session = Depends(get_db)) -> dict:
    return statistics.activity_heatmap(db)


@router.get("/locations")
def locations(db: Session = Depends(get_db)) -> list[dict]:
    return statistics.location_stats(db)


@router.get("/user-activity")
def user_activity(db: Session = Depends(get_db)) -> dict:
    return statistics.user_activity(db)


@router.get("/exports")
def exports(db: Session = Depends(get_db)) -> dict:
    return statistics.export_stats(db)
