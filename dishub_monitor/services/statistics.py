"""
Dashboard and analytics figures.

Every call recomputes from the database. Weekly, monthly and hourly
series come from ``aggregation`` buckets so empty periods show up as
zero instead of disappearing from charts.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.timeutil import (
    WEEKDAY_LABELS,
    end_of_day,
    now_local,
    short_day_label,
    start_of_day,
    start_of_week,
)
from ..models.report import Report
from ..models.role import Role
from ..models.scan import Scan
from ..models.user import User
from ..models.vehicle import TAX_ACTIVE, TAX_INACTIVE, Vehicle
from .aggregation import (
    COMPLIANT,
    EXPIRED,
    EXPIRING_SOON,
    compliance_criteria,
    count_series,
    count_where,
    day_buckets,
    distinct_count,
    grouped_count,
    month_buckets,
    percentage,
    round_half_up,
    week_buckets,
)


UNKNOWN_LOCATION = "Unknown"
UNKNOWN_LOCATION_LABEL = "Tidak Diketahui"
HEATMAP_DAYS = 30


def _active_vehicle():
    return Vehicle.is_active.is_(True)


def dashboard(db: Session, *, now: Optional[datetime] = None) -> dict:
    now = now or now_local()
    active = _active_vehicle()
    total = count_where(db, Vehicle, active)
    tax_active = count_where(db, Vehicle, active, Vehicle.tax_status == TAX_ACTIVE)
    tax_inactive = count_where(db, Vehicle, active, Vehicle.tax_status == TAX_INACTIVE)

    week = day_buckets(start_of_week(now), 7)
    months = month_buckets(now, 6)
    weekly = count_series(db, Scan.scan_time, week)
    monthly = count_series(db, Scan.scan_time, months)

    return {
        "totalVehicles": total,
        "taxActive": tax_active,
        "taxInactive": tax_inactive,
        "scansToday": count_where(
            db, Scan, Scan.scan_time >= start_of_day(now), Scan.scan_time <= end_of_day(now)
        ),
        "totalScans": count_where(db, Scan),
        "trends": {
            "weekly": [{"day": b.label, "count": c} for b, c in zip(week, weekly)],
            "taxStatus": [
                {"name": "Lunas", "value": tax_active},
                {"name": "Belum Lunas", "value": tax_inactive},
            ],
            "monthly": [{"month": b.label, "count": c} for b, c in zip(months, monthly)],
        },
        "complianceRate": percentage(tax_active, total),
    }


def vehicle_types(db: Session) -> list[dict]:
    groups = grouped_count(db, Vehicle.vehicle_type, _active_vehicle())
    total = sum(count for _, count in groups)
    return [
        {"type": key, "count": count, "percentage": percentage(count, total)}
        for key, count in groups
    ]


def tax_compliance(db: Session, *, now: Optional[datetime] = None) -> dict:
    now = now or now_local()
    active = _active_vehicle()
    classes = compliance_criteria(now)
    total = count_where(db, Vehicle, active)
    compliant = count_where(db, Vehicle, active, classes[COMPLIANT])

    trend = []
    for bucket in month_buckets(now, 6):
        month_end = bucket.end - timedelta(microseconds=1)
        month_total = count_where(db, Vehicle, active, Vehicle.created_at <= month_end)
        month_active = count_where(
            db, Vehicle, active, Vehicle.created_at <= month_end, Vehicle.tax_status == TAX_ACTIVE
        )
        trend.append(
            {
                "month": bucket.label,
                "compliance": percentage(month_active, month_total),
                "total": month_total,
                "active": month_active,
            }
        )

    return {
        "totalVehicles": total,
        "taxActive": compliant,
        "taxExpired": count_where(db, Vehicle, active, classes[EXPIRED]),
        "taxExpiringSoon": count_where(db, Vehicle, active, classes[EXPIRING_SOON]),
        "complianceRate": percentage(compliant, total),
        "monthlyTrend": trend,
    }


def weekly_trends(db: Session, *, now: Optional[datetime] = None) -> list[dict]:
    now = now or now_local()
    out = []
    for bucket in week_buckets(now, 4):
        window = (Scan.scan_time >= bucket.start, Scan.scan_time < bucket.end)
        scans = count_where(db, Scan, *window)
        out.append(
            {
                "week": bucket.label,
                "startDate": short_day_label(bucket.start),
                "endDate": short_day_label(bucket.end - timedelta(days=1)),
                "scans": scans,
                "uniqueVehicles": distinct_count(db, Scan.plate_number, *window),
                "avgScansPerDay": round_half_up(scans / 7),
            }
        )
    return out


def activity_heatmap(db: Session, *, now: Optional[datetime] = None) -> dict:
    """Scans of the last 30 days as a day x hour grid.

    One query fetches the scan times; the grid is filled in memory.
    """
    now = now or now_local()
    first_day = start_of_day(now) - timedelta(days=HEATMAP_DAYS - 1)
    times = [
        t
        for (t,) in db.query(Scan.scan_time)
        .filter(Scan.scan_time >= first_day, Scan.scan_time <= end_of_day(now))
        .all()
    ]

    grid = {}
    for offset in range(HEATMAP_DAYS):
        day = first_day + timedelta(days=offset)
        grid[day.date()] = [0] * 24
    hourly = [0] * 24
    for t in times:
        grid[t.date()][t.hour] += 1
        hourly[t.hour] += 1

    heatmap = []
    for day, hours in grid.items():
        heatmap.append(
            {
                "date": day.isoformat(),
                "day": f"{day.day:02d}",
                "weekday": WEEKDAY_LABELS[day.weekday()],
                "hours": hours,
                "total": sum(hours),
            }
        )

    total = len(times)
    hourly_stats = [
        {"hour": f"{hour:02d}:00", "count": count, "percentage": percentage(count, total)}
        for hour, count in enumerate(hourly)
    ]
    # Earliest hour wins ties.
    peak = max(hourly_stats, key=lambda item: (item["count"], -int(item["hour"][:2])))
    return {
        "heatmapData": heatmap,
        "hourlyStats": hourly_stats,
        "peakHour": peak,
        "totalScans": total,
    }


def location_stats(db: Session, *, limit: int = 20) -> list[dict]:
    total = count_where(db, Scan)
    return [
        {
            "location": UNKNOWN_LOCATION_LABEL if key == UNKNOWN_LOCATION else key,
            "count": count,
            "percentage": percentage(count, total),
        }
        for key, count in grouped_count(db, Scan.location, limit=limit)
    ]


def user_activity(db: Session, *, limit: int = 10) -> dict:
    scan_count = func.count(Scan.id)
    rows = (
        db.query(User, Role.name, scan_count)
        .join(Role, Role.id == User.role_id)
        .outerjoin(Scan, Scan.user_id == User.id)
        .filter(User.is_active.is_(True))
        .group_by(User.id, Role.name)
        .order_by(scan_count.desc(), User.username.asc())
        .limit(limit)
        .all()
    )
    return {
        "topUsers": [
            {
                "id": user.id,
                "username": user.username,
                "name": user.name,
                "role": role_name,
                "scansCount": int(count),
            }
            for user, role_name, count in rows
        ],
        "totalActiveUsers": len(rows),
    }


def export_stats(db: Session, *, now: Optional[datetime] = None) -> dict:
    now = now or now_local()
    reports = (
        db.query(Report)
        .filter(Report.created_at >= now - timedelta(days=30))
        .order_by(Report.created_at.desc())
        .all()
    )
    by_format: dict[str, dict[str, int]] = {}
    for report in reports:
        stats = by_format.setdefault(report.file_format, {"count": 0, "successful": 0})
        stats["count"] += 1
        if report.status == "completed":
            stats["successful"] += 1

    return {
        "totalReports": len(reports),
        "successfulReports": sum(1 for r in reports if r.status == "completed"),
        "formatStats": [
            {
                "format": fmt.upper(),
                "total": stats["count"],
                "successful": stats["successful"],
                "successRate": percentage(stats["successful"], stats["count"]),
            }
            for fmt, stats in sorted(by_format.items())
        ],
        "recentReports": [
            {
                "id": r.id,
                "title": r.title,
                "format": r.file_format.upper(),
                "status": r.status,
                "createdAt": r.created_at,
            }
            for r in reports[:5]
        ],
    }
