"""
Vehicle registry service.

Plate numbers are globally unique, including soft-deleted vehicles. The
application-level check gives a friendly conflict; the unique index is
what actually settles concurrent inserts.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, Mapping, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..core.errors import BadRequestError, ConflictError, NotFoundError
from ..core.pagination import PageParams, page_envelope, paginate
from ..core.timeutil import now_local, parse_date_param
from ..models.scan import Scan
from ..models.vehicle import TAX_ACTIVE, TAX_INACTIVE, Vehicle
from ..schemas.vehicle import VehicleCreate, VehicleOut, VehicleUpdate
from .aggregation import EXPIRING_SOON, compliance_criteria, count_where, grouped_count
from .filters import build_filter, compile_predicate
from .scans import serialize_scan


_logger = logging.getLogger("vehicles")

PLATE_CONFLICT = "Vehicle with this plate number already exists"

SORT_FIELDS = {
    "createdAt": Vehicle.created_at,
    "updatedAt": Vehicle.updated_at,
    "plateNumber": Vehicle.plate_number,
    "ownerName": Vehicle.owner_name,
    "vehicleType": Vehicle.vehicle_type,
    "taxStatus": Vehicle.tax_status,
    "taxExpiryDate": Vehicle.tax_expiry_date,
}


def sort_clause(fields: Mapping[str, Any], sort_by: Optional[str], sort_order: Optional[str], default: str):
    column = fields.get(sort_by or default, fields[default])
    return column.asc() if (sort_order or "desc").lower() == "asc" else column.desc()


def serialize_vehicle(vehicle: Vehicle) -> dict:
    return VehicleOut.model_validate(vehicle).dump()


def _parse_expiry(value: Optional[str]) -> Optional[datetime]:
    if value is None or not str(value).strip():
        return None
    parsed = parse_date_param(value)
    if parsed is None:
        raise BadRequestError(f"Invalid taxExpiryDate: {value}")
    return parsed


def _plate_taken(db: Session, plate: str, *, exclude_id: Optional[str] = None) -> bool:
    query = db.query(Vehicle.id).filter(Vehicle.plate_number == plate)
    if exclude_id:
        query = query.filter(Vehicle.id != exclude_id)
    return query.first() is not None


def _commit_plate(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(PLATE_CONFLICT)


def _get(db: Session, vehicle_id: str) -> Vehicle:
    vehicle = db.get(Vehicle, vehicle_id)
    if vehicle is None:
        raise NotFoundError("Vehicle not found")
    return vehicle


def create_vehicle(db: Session, payload: VehicleCreate) -> Vehicle:
    plate = payload.plate_number.strip()
    if _plate_taken(db, plate):
        raise ConflictError(PLATE_CONFLICT)
    vehicle = Vehicle(
        plate_number=plate,
        vehicle_type=payload.vehicle_type,
        color=payload.color,
        owner_name=payload.owner_name,
        tax_status=payload.tax_status,
        tax_expiry_date=_parse_expiry(payload.tax_expiry_date),
        is_active=True,
    )
    db.add(vehicle)
    _commit_plate(db)
    db.refresh(vehicle)
    _logger.info("Vehicle created plate=%s", plate)
    return vehicle


def _latest_scans(db: Session, vehicle_id: str, limit: int) -> list[Scan]:
    return (
        db.query(Scan)
        .options(joinedload(Scan.user))
        .filter(Scan.vehicle_id == vehicle_id)
        .order_by(Scan.scan_time.desc())
        .limit(limit)
        .all()
    )


def _scan_summaries(db: Session, vehicle_ids: list[str]) -> tuple[dict[str, int], dict[str, tuple[datetime, str]]]:
    """Scan count and latest (time, location) per vehicle, in two queries."""
    if not vehicle_ids:
        return {}, {}
    rows = (
        db.query(Scan.vehicle_id, func.count(Scan.id), func.max(Scan.scan_time))
        .filter(Scan.vehicle_id.in_(vehicle_ids))
        .group_by(Scan.vehicle_id)
        .all()
    )
    counts = {vehicle_id: int(count) for vehicle_id, count, _ in rows}
    last_seen = {vehicle_id: last for vehicle_id, _, last in rows}

    latest: dict[str, tuple[datetime, str]] = {}
    if last_seen:
        candidates = (
            db.query(Scan.vehicle_id, Scan.scan_time, Scan.location)
            .filter(Scan.vehicle_id.in_(list(last_seen)), Scan.scan_time.in_(set(last_seen.values())))
            .order_by(Scan.id.asc())
            .all()
        )
        for vehicle_id, scan_time, location in candidates:
            if last_seen.get(vehicle_id) == scan_time:
                latest.setdefault(vehicle_id, (scan_time, location))
    return counts, latest


def list_vehicles(
    db: Session,
    *,
    params: Mapping[str, Any],
    page: PageParams,
    now: Optional[datetime] = None,
) -> dict:
    predicate = build_filter("vehicle", params, now=now)
    query = (
        db.query(Vehicle)
        .filter(Vehicle.is_active.is_(True), compile_predicate(Vehicle, predicate))
        .order_by(
            sort_clause(SORT_FIELDS, params.get("sortBy"), params.get("sortOrder"), "createdAt"),
            Vehicle.id.asc(),
        )
    )
    vehicles, total = paginate(query, page)

    counts, latest = _scan_summaries(db, [v.id for v in vehicles])
    data = []
    for vehicle in vehicles:
        item = serialize_vehicle(vehicle)
        item["_count"] = {"scans": counts.get(vehicle.id, 0)}
        last = latest.get(vehicle.id)
        item["scans"] = [{"scanTime": last[0], "location": last[1]}] if last else []
        data.append(item)
    return page_envelope(data, total=total, params=page)


def get_vehicle(db: Session, vehicle_id: str) -> dict:
    vehicle = _get(db, vehicle_id)
    item = serialize_vehicle(vehicle)
    item["scans"] = [serialize_scan(s) for s in _latest_scans(db, vehicle.id, 10)]
    item["_count"] = {"scans": count_where(db, Scan, Scan.vehicle_id == vehicle.id)}
    return item


def get_vehicle_by_plate(db: Session, plate_number: str) -> Optional[dict]:
    vehicle = db.query(Vehicle).filter(Vehicle.plate_number == plate_number.strip()).first()
    if vehicle is None:
        return None
    item = serialize_vehicle(vehicle)
    item["scans"] = [serialize_scan(s) for s in _latest_scans(db, vehicle.id, 5)]
    return item


def update_vehicle(db: Session, vehicle_id: str, payload: VehicleUpdate) -> Vehicle:
    vehicle = _get(db, vehicle_id)
    data = payload.model_dump(exclude_unset=True)

    plate = data.pop("plate_number", None)
    if plate is not None:
        plate = plate.strip()
        if plate != vehicle.plate_number and _plate_taken(db, plate, exclude_id=vehicle.id):
            raise ConflictError(PLATE_CONFLICT)
        vehicle.plate_number = plate
    if "tax_expiry_date" in data:
        vehicle.tax_expiry_date = _parse_expiry(data.pop("tax_expiry_date"))
    for key, value in data.items():
        if value is not None:
            setattr(vehicle, key, value)

    _commit_plate(db)
    db.refresh(vehicle)
    return vehicle


def update_tax_status(db: Session, vehicle_id: str, tax_status: str) -> Vehicle:
    if tax_status not in {TAX_ACTIVE, TAX_INACTIVE}:
        raise BadRequestError(f"Invalid taxStatus: {tax_status}")
    vehicle = _get(db, vehicle_id)
    vehicle.tax_status = tax_status
    db.commit()
    db.refresh(vehicle)
    return vehicle


def remove_vehicle(db: Session, vehicle_id: str) -> dict:
    vehicle = _get(db, vehicle_id)
    vehicle.is_active = False
    db.commit()
    _logger.info("Vehicle soft-deleted id=%s plate=%s", vehicle.id, vehicle.plate_number)
    return {"message": "Vehicle deleted successfully"}


def vehicle_stats(db: Session) -> dict:
    active = Vehicle.is_active.is_(True)
    recent = (
        db.query(Scan)
        .options(joinedload(Scan.user))
        .order_by(Scan.scan_time.desc(), Scan.id.asc())
        .limit(10)
        .all()
    )
    return {
        "totalVehicles": count_where(db, Vehicle, active),
        "taxActive": count_where(db, Vehicle, active, Vehicle.tax_status == TAX_ACTIVE),
        "taxInactive": count_where(db, Vehicle, active, Vehicle.tax_status == TAX_INACTIVE),
        "vehiclesByType": [
            {"type": key, "count": count} for key, count in grouped_count(db, Vehicle.vehicle_type, active)
        ],
        "recentScans": [serialize_scan(s) for s in recent],
    }


def tax_expiry_soon(db: Session, *, now: Optional[datetime] = None, limit: int = 20) -> list[dict]:
    now = now or now_local()
    rows = (
        db.query(Vehicle)
        .filter(Vehicle.is_active.is_(True), compliance_criteria(now)[EXPIRING_SOON])
        .order_by(Vehicle.tax_expiry_date.asc(), Vehicle.plate_number.asc())
        .limit(limit)
        .all()
    )
    return [serialize_vehicle(v) for v in rows]
