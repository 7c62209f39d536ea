"""
Plate scan endpoints.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...core.auth import UserContext, require_permission
from ...core.db import get_db
from ...core.pagination import PageParams, page_params
from ...schemas.scan import ScanCreate
from ...services import scans as scan_service


router = APIRouter(prefix="/api/scans", tags=["scans"])


@router.post("", status_code=201)
def create_scan(
    payload: ScanCreate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_permission("edit")),
) -> dict:
    return scan_service.create_scan(
        db,
        payload,
        user_id=user.user_id,
        ip_address=user.ip_address,
        user_agent=user.user_agent,
    )


@router.get("", dependencies=[Depends(require_permission("view"))])
def list_scans(
    search: Optional[str] = Query(None),
    tax_status: Optional[str] = Query(None, alias="taxStatus"),
    vehicle_type: Optional[str] = Query(None, alias="vehicleType"),
    user_id: Optional[str] = Query(None, alias="userId"),
    location: Optional[str] = Query(None),
    filter: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    sort_by: str = Query("scanTime", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    page: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
) -> dict:
    params = {
        "search": search,
        "taxStatus": tax_status,
        "vehicleType": vehicle_type,
        "userId": user_id,
        "location": location,
        "filter": filter,
        "startDate": start_date,
        "endDate": end_date,
        "sortBy": sort_by,
        "sortOrder": sort_order,
    }
    return scan_service.list_scans(db, params=params, page=page)


@router.get("/recent", dependencies=[Depends(require_permission("view"))])
def recent_scans(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
) -> list[dict]:
    return scan_service.recent_scans(db, limit=limit)


@router.get("/history", dependencies=[Depends(require_permission("view"))])
def scan_history(
    filter: Optional[str] = Query("today"),
    page: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
) -> dict:
    return scan_service.scan_history(db, window=filter, page=page)


@router.get("/stats", dependencies=[Depends(require_permission("view"))])
def scan_stats(db: Session = Depends(get_db)) -> dict:
    return scan_service.scan_stats(db)


@router.get("/locations", dependencies=[Depends(require_permission("view"))])
def scan_locations(db: Session = Depends(get_db)) -> list[dict]:
    return scan_service.scan_locations(db)


@router.get("/top-vehicles", dependencies=[Depends(require_permission("view"))])
def top_vehicles(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
) -> list[dict]:
    return scan_service.top_vehicles(db, limit=limit)


@router.get("/{scan_id}", dependencies=[Depends(require_permission("view"))])
def get_scan(scan_id: str, db: Session = Depends(get_db)) -> dict:
    return scan_service.get_scan(db, scan_id)


@router.delete("/{scan_id}")
def delete_scan(
    scan_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_permission("delete")),
) -> dict:
    return scan_service.delete_scan(
        db,
        scan_id,
        user_id=user.user_id,
        ip_address=user.ip_address,
        user_agent=user.user_agent,
    )
