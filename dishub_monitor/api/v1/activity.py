"""
Activity log endpoints.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ...core.auth import require_permission
from ...core.db import get_db
from ...core.pagination import PageParams, page_params
from ...core.timeutil import now_local
from ...schemas.report import ActivityExportIn
from ...services import activity as activity_service


router = APIRouter(prefix="/api/activity", tags=["activity"])


@router.get("/logs", dependencies=[Depends(require_permission("view"))])
def list_logs(
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None, alias="userId"),
    filter: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    sort_by: str = Query("timestamp", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    page: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
) -> dict:
    params = {
        "search": search,
        "status": status,
        "action": action,
        "userId": user_id,
        "filter": filter,
        "startDate": start_date,
        "endDate": end_date,
        "sortBy": sort_by,
        "sortOrder": sort_order,
    }
    return activity_service.list_logs(db, params=params, page=page)


@router.get("/recent", dependencies=[Depends(require_permission("view"))])
def recent_logs(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
) -> list[dict]:
    return activity_service.recent_logs(db, limit=limit)


@router.get("/stats", dependencies=[Depends(require_permission("view"))])
def activity_stats(db: Session = Depends(get_db)) -> dict:
    return activity_service.activity_stats(db)


@router.get("/actions", dependencies=[Depends(require_permission("view"))])
def distinct_actions(db: Session = Depends(get_db)) -> list[str]:
    return activity_service.distinct_actions(db)


@router.get("/user/{user_id}", dependencies=[Depends(require_permission("view"))])
def logs_for_user(
    user_id: str,
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
) -> list[dict]:
    return activity_service.logs_for_user(db, user_id, limit=limit)


@router.get("/failed", dependencies=[Depends(require_permission("view"))])
def failed_logs(db: Session = Depends(get_db)) -> list[dict]:
    return activity_service.failed_logs(db)


@router.get("/system", dependencies=[Depends(require_permission("view"))])
def system_logs(db: Session = Depends(get_db)) -> list[dict]:
    return activity_service.system_logs(db)


@router.post("/export", dependencies=[Depends(require_permission("export"))])
def export_logs(payload: ActivityExportIn, db: Session = Depends(get_db)) -> Response:
    params = payload.model_dump(by_alias=True)
    content = activity_service.export_logs_csv(db, params=params)
    activity_service.record_activity(
        db,
        action="Export Activity Logs",
        user_id=None,
        ip_address="N/A",
        details="Activity logs exported to CSV",
    )
    filename = f"activity_logs_{now_local().strftime('%Y%m%d_%H%M%S')}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
