"""
Vehicle registry endpoints.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...core.auth import require_permission
from ...core.db import get_db
from ...core.pagination import PageParams, page_params
from ...schemas.vehicle import TaxStatusUpdate, VehicleCreate, VehicleUpdate
from ...services import vehicles as vehicle_service


router = APIRouter(prefix="/api/vehicles", tags=["vehicles"])


@router.post("", status_code=201, dependencies=[Depends(require_permission("edit"))])
def create_vehicle(payload: VehicleCreate, db: Session = Depends(get_db)) -> dict:
    vehicle = vehicle_service.create_vehicle(db, payload)
    return vehicle_service.serialize_vehicle(vehicle)


@router.get("", dependencies=[Depends(require_permission("view"))])
def list_vehicles(
    search: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    vehicle_type: Optional[str] = Query(None, alias="vehicleType"),
    tax_status: Optional[str] = Query(None, alias="taxStatus"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    page: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
) -> dict:
    params = {
        "search": search,
        "type": type,
        "vehicleType": vehicle_type,
        "taxStatus": tax_status,
        "startDate": start_date,
        "endDate": end_date,
        "sortBy": sort_by,
        "sortOrder": sort_order,
    }
    return vehicle_service.list_vehicles(db, params=params, page=page)


@router.get("/stats", dependencies=[Depends(require_permission("view"))])
def vehicle_stats(db: Session = Depends(get_db)) -> dict:
    return vehicle_service.vehicle_stats(db)


@router.get("/tax-expiry-soon", dependencies=[Depends(require_permission("view"))])
def tax_expiry_soon(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
) -> list[dict]:
    return vehicle_service.tax_expiry_soon(db, limit=limit)


@router.get("/plate/{plate_number}", dependencies=[Depends(require_permission("view"))])
def get_vehicle_by_plate(plate_number: str, db: Session = Depends(get_db)) -> Optional[dict]:
    return vehicle_service.get_vehicle_by_plate(db, plate_number)


@router.get("/{vehicle_id}", dependencies=[Depends(require_permission("view"))])
def get_vehicle(vehicle_id: str, db: Session = Depends(get_db)) -> dict:
    return vehicle_service.get_vehicle(db, vehicle_id)


@router.put("/{vehicle_id}", dependencies=[Depends(require_permission("edit"))])
def update_vehicle(vehicle_id: str, payload: VehicleUpdate, db: Session = Depends(get_db)) -> dict:
    vehicle = vehicle_service.update_vehicle(db, vehicle_id, payload)
    return vehicle_service.serialize_vehicle(vehicle)


@router.put("/{vehicle_id}/tax-status", dependencies=[Depends(require_permission("edit"))])
def update_tax_status(vehicle_id: str, payload: TaxStatusUpdate, db: Session = Depends(get_db)) -> dict:
    vehicle = vehicle_service.update_tax_status(db, vehicle_id, payload.tax_status)
    return vehicle_service.serialize_vehicle(vehicle)


@router.delete("/{vehicle_id}", dependencies=[Depends(require_permission("delete"))])
def delete_vehicle(vehicle_id: str, db: Session = Depends(get_db)) -> dict:
    return vehicle_service.remove_vehicle(db, vehicle_id)
