"""
Scan ingestion and scan analytics.

Submitting a scan upserts the vehicle it refers to: unseen plates create
a vehicle with defaults, known plates only take the fields the scan
actually carries. The stored scan copies the vehicle values after that
merge.
"""

from __future__ import annotations

from datetime import datetime
import json
import logging
from typing import Any, Mapping, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..core.errors import ConflictError, NotFoundError
from ..core.pagination import PageParams, page_envelope, paginate
from ..core.timeutil import format_date, now_local, start_of_day, start_of_week
from ..models.scan import Scan
from ..models.vehicle import TAX_ACTIVE, TAX_INACTIVE, Vehicle
from ..schemas.scan import ScanCreate, ScanOut
from ..schemas.vehicle import VehicleOut
from .activity import record_activity
from .aggregation import count_series, count_where, day_buckets, distinct_count, grouped_count
from .filters import NAMED_WINDOWS, build_filter, compile_predicate, named_window


_logger = logging.getLogger("scans")

DEFAULT_OWNER = "Unknown"
DEFAULT_LOCATION = "Unknown"
MERGED_FIELDS = ("vehicle_type", "color", "owner_name", "tax_status")

SORT_FIELDS = {
    "scanTime": Scan.scan_time,
    "plateNumber": Scan.plate_number,
    "ownerName": Scan.owner_name,
    "location": Scan.location,
    "taxStatus": Scan.tax_status,
    "vehicleType": Scan.vehicle_type,
}


def serialize_scan(scan: Scan) -> dict:
    return ScanOut.model_validate(scan).dump()


def _with_user(db: Session):
    return db.query(Scan).options(joinedload(Scan.user))


def create_scan(
    db: Session,
    payload: ScanCreate,
    *,
    user_id: str,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> dict:
    plate = payload.plate_number.strip()
    vehicle = db.query(Vehicle).filter(Vehicle.plate_number == plate).first()
    if vehicle is None:
        vehicle = Vehicle(
            plate_number=plate,
            vehicle_type=payload.vehicle_type,
            color=payload.color,
            owner_name=payload.owner_name or DEFAULT_OWNER,
            tax_status=payload.tax_status or TAX_INACTIVE,
            is_active=True,
        )
        db.add(vehicle)
        _logger.info("Vehicle auto-created from scan plate=%s", plate)
    else:
        for name in MERGED_FIELDS:
            value = getattr(payload, name)
            if value:
                setattr(vehicle, name, value)

    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Vehicle with this plate number already exists")

    scan = Scan(
        plate_number=plate,
        vehicle_type=vehicle.vehicle_type,
        color=vehicle.color,
        owner_name=vehicle.owner_name,
        tax_status=vehicle.tax_status,
        location=payload.location or DEFAULT_LOCATION,
        user_id=user_id,
        ip_address=ip_address,
        user_agent=user_agent,
        vehicle_id=vehicle.id,
        details=json.dumps(payload.metadata) if payload.metadata else None,
    )
    db.add(scan)
    db.commit()
    db.refresh(scan)

    record_activity(
        db,
        action="Scan Vehicle",
        user_id=user_id,
        ip_address=ip_address,
        user_agent=user_agent,
        details=f"Scanned vehicle: {plate} - {scan.owner_name}",
    )
    out = serialize_scan(scan)
    out["vehicle"] = VehicleOut.model_validate(vehicle).dump()
    return out


def list_scans(
    db: Session,
    *,
    params: Mapping[str, Any],
    page: PageParams,
    now: Optional[datetime] = None,
) -> dict:
    predicate = build_filter("scan", params, now=now)
    column = SORT_FIELDS.get(params.get("sortBy") or "scanTime", Scan.scan_time)
    order = column.asc() if (params.get("sortOrder") or "desc").lower() == "asc" else column.desc()
    query = _with_user(db).filter(compile_predicate(Scan, predicate)).order_by(order, Scan.id.asc())
    rows, total = paginate(query, page)
    return page_envelope([serialize_scan(s) for s in rows], total=total, params=page)


def recent_scans(db: Session, *, limit: int = 10) -> list[dict]:
    rows = _with_user(db).order_by(Scan.scan_time.desc(), Scan.id.asc()).limit(limit).all()
    return [serialize_scan(s) for s in rows]


def scan_history(
    db: Session,
    *,
    window: Optional[str],
    page: PageParams,
    now: Optional[datetime] = None,
) -> dict:
    name = window if window in NAMED_WINDOWS else "today"
    start, end = named_window(name, now)
    query = (
        _with_user(db)
        .filter(Scan.scan_time >= start, Scan.scan_time <= end)
        .order_by(Scan.scan_time.desc(), Scan.id.asc())
    )
    rows, total = paginate(query, page)
    out = page_envelope([serialize_scan(s) for s in rows], total=total, params=page)
    out["period"] = {"filter": name, "startDate": start, "endDate": end}
    return out


def scan_stats(db: Session, *, now: Optional[datetime] = None) -> dict:
    now = now or now_local()
    buckets = day_buckets(start_of_week(now), 7)
    weekly = count_series(db, Scan.scan_time, buckets)
    return {
        "totalScans": count_where(db, Scan),
        "scansToday": count_where(db, Scan, Scan.scan_time >= start_of_day(now)),
        "uniqueVehiclesScanned": distinct_count(db, Scan.plate_number),
        "taxActiveScans": count_where(db, Scan, Scan.tax_status == TAX_ACTIVE),
        "taxInactiveScans": count_where(db, Scan, Scan.tax_status == TAX_INACTIVE),
        "weeklyTrend": [
            {"day": bucket.label, "count": count, "date": format_date(bucket.start)}
            for bucket, count in zip(buckets, weekly)
        ],
        "vehicleTypeDistribution": [
            {"type": key, "count": count} for key, count in grouped_count(db, Scan.vehicle_type)
        ],
    }


def scan_locations(db: Session, *, limit: int = 20) -> list[dict]:
    return [{"location": key, "count": count} for key, count in grouped_count(db, Scan.location, limit=limit)]


def top_vehicles(db: Session, *, limit: int = 10) -> list[dict]:
    return [
        {"plateNumber": key, "count": count}
        for key, count in grouped_count(db, Scan.plate_number, limit=limit)
    ]


def get_scan(db: Session, scan_id: str) -> dict:
    scan = _with_user(db).filter(Scan.id == scan_id).first()
    if scan is None:
        raise NotFoundError("Scan not found")
    out = serialize_scan(scan)
    out["vehicle"] = VehicleOut.model_validate(scan.vehicle).dump() if scan.vehicle else None
    return out


def delete_scan(
    db: Session,
    scan_id: str,
    *,
    user_id: str,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> dict:
    scan = db.get(Scan, scan_id)
    if scan is None:
        raise NotFoundError("Scan not found")
    plate = scan.plate_number
    db.delete(scan)
    db.commit()
    record_activity(
        db,
        action="Delete Scan",
        user_id=user_id,
        ip_address=ip_address,
        user_agent=user_agent,
        details=f"Deleted scan record: {plate}",
    )
    return {"message": "Scan deleted successfully"}
