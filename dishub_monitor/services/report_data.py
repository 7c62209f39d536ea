"""
Row-shaped datasets for each report type.

Column labels are part of the contract with downstream consumers of the
exported files and must not be renamed or reordered.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import math
from typing import Callable, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..core.timeutil import format_date, format_timestamp, now_local
from ..models.activity_log import ActivityLog
from ..models.scan import Scan
from ..models.user import User
from ..models.vehicle import TAX_ACTIVE, TAX_INACTIVE, Vehicle


REPORT_COLUMNS: dict[str, tuple[str, ...]] = {
    "vehicle-data": (
        "Plate Number",
        "Vehicle Type",
        "Color",
        "Owner Name",
        "Tax Status",
        "Tax Expiry Date",
        "Scans Count",
        "Created Date",
    ),
    "scan-history": (
        "Scan Time",
        "Plate Number",
        "Vehicle Type",
        "Color",
        "Owner Name",
        "Tax Status",
        "Location",
        "Scanned By",
        "IP Address",
    ),
    "tax-compliance": (
        "Plate Number",
        "Owner Name",
        "Vehicle Type",
        "Current Tax Status",
        "Tax Expiry Date",
        "Days Until Expiry",
        "Last Scan Date",
        "Total Scans",
    ),
    "activity-logs": (
        "Timestamp",
        "User",
        "Username",
        "Role",
        "Action",
        "Status",
        "IP Address",
        "Details",
    ),
}

TAX_FILTERS = {"all": None, "lunas": TAX_ACTIVE, "belum-lunas": TAX_INACTIVE}
# Activity rows have no tax status; the same filter selects by outcome instead.
ACTIVITY_STATUS_FILTERS = {"all": None, "lunas": "success", "belum-lunas": "failed"}

FILTER_LABELS = {"all": "All", "lunas": "Lunas (Aktif)", "belum-lunas": "Belum Lunas (Mati)"}

# Count and day-offset columns are ints; everything else is text.
Cell = Union[str, int]


@dataclass
class ReportDataset:
    report_type: str
    columns: list[str]
    rows: list[list[Cell]] = field(default_factory=list)


def _scan_window(start: datetime, end: datetime):
    return (Scan.scan_time >= start, Scan.scan_time <= end)


def _scan_counts(db: Session, start: datetime, end: datetime) -> dict[str, int]:
    rows = (
        db.query(Scan.vehicle_id, func.count(Scan.id))
        .filter(Scan.vehicle_id.isnot(None), *_scan_window(start, end))
        .group_by(Scan.vehicle_id)
        .all()
    )
    return {vehicle_id: int(count) for vehicle_id, count in rows}


def _last_scans(db: Session, start: datetime, end: datetime) -> dict[str, datetime]:
    rows = (
        db.query(Scan.vehicle_id, func.max(Scan.scan_time))
        .filter(Scan.vehicle_id.isnot(None), *_scan_window(start, end))
        .group_by(Scan.vehicle_id)
        .all()
    )
    return {vehicle_id: last for vehicle_id, last in rows}


def _active_vehicles(db: Session, tax_filter: str):
    query = db.query(Vehicle).filter(Vehicle.is_active.is_(True))
    status = TAX_FILTERS.get(tax_filter)
    if status:
        query = query.filter(Vehicle.tax_status == status)
    return query


def vehicle_rows(db: Session, start: datetime, end: datetime, tax_filter: str, now: datetime) -> list[list[Cell]]:
    counts = _scan_counts(db, start, end)
    vehicles = _active_vehicles(db, tax_filter).order_by(Vehicle.created_at.desc(), Vehicle.plate_number.asc()).all()
    return [
        [
            v.plate_number,
            v.vehicle_type,
            v.color,
            v.owner_name,
            v.tax_status,
            format_date(v.tax_expiry_date),
            counts.get(v.id, 0),
            format_date(v.created_at),
        ]
        for v in vehicles
    ]


def scan_rows(db: Session, start: datetime, end: datetime, tax_filter: str, now: datetime) -> list[list[Cell]]:
    query = db.query(Scan).options(joinedload(Scan.user)).filter(*_scan_window(start, end))
    status = TAX_FILTERS.get(tax_filter)
    if status:
        query = query.filter(Scan.tax_status == status)
    scans = query.order_by(Scan.scan_time.desc(), Scan.id.asc()).all()
    return [
        [
            format_timestamp(s.scan_time),
            s.plate_number,
            s.vehicle_type,
            s.color,
            s.owner_name,
            s.tax_status,
            s.location,
            s.user.name if s.user is not None else "Unknown",
            s.ip_address or "N/A",
        ]
        for s in scans
    ]


def _days_until(expiry: Optional[datetime], now: datetime) -> Cell:
    if expiry is None:
        return "N/A"
    return math.ceil((expiry - now).total_seconds() / 86400)


def compliance_rows(db: Session, start: datetime, end: datetime, tax_filter: str, now: datetime) -> list[list[Cell]]:
    counts = _scan_counts(db, start, end)
    last = _last_scans(db, start, end)
    vehicles = _active_vehicles(db, tax_filter).order_by(Vehicle.plate_number.asc()).all()
    return [
        [
            v.plate_number,
            v.owner_name,
            v.vehicle_type,
            v.tax_status,
            format_date(v.tax_expiry_date),
            _days_until(v.tax_expiry_date, now),
            format_timestamp(last.get(v.id), default="Never"),
            counts.get(v.id, 0),
        ]
        for v in vehicles
    ]


def activity_rows(db: Session, start: datetime, end: datetime, tax_filter: str, now: datetime) -> list[list[Cell]]:
    query = (
        db.query(ActivityLog)
        .options(joinedload(ActivityLog.user).joinedload(User.role))
        .filter(ActivityLog.timestamp >= start, ActivityLog.timestamp <= end)
    )
    status = ACTIVITY_STATUS_FILTERS.get(tax_filter)
    if status:
        query = query.filter(ActivityLog.status == status)
    logs = query.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.asc()).all()
    out = []
    for log in logs:
        user = log.user
        out.append(
            [
                format_timestamp(log.timestamp),
                user.name if user is not None else "System",
                user.username if user is not None else "system",
                user.role.name if user is not None and user.role is not None else "System",
                log.action,
                log.status,
                log.ip_address or "N/A",
                log.details or "",
            ]
        )
    return out


ROW_BUILDERS: dict[str, Callable[..., list[list[Cell]]]] = {
    "vehicle-data": vehicle_rows,
    "scan-history": scan_rows,
    "tax-compliance": compliance_rows,
    "activity-logs": activity_rows,
}


def build_report_dataset(
    db: Session,
    *,
    report_type: str,
    start: datetime,
    end: datetime,
    tax_filter: str = "all",
    now: Optional[datetime] = None,
) -> ReportDataset:
    builder = ROW_BUILDERS[report_type]
    rows = builder(db, start, end, tax_filter, now or now_local())
    return ReportDataset(report_type=report_type, columns=list(REPORT_COLUMNS[report_type]), rows=rows)
