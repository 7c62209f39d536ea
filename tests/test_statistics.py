from datetime import datetime, timedelta

from dishub_monitor.models.report import Report
from dishub_monitor.models.scan import Scan
from dishub_monitor.models.vehicle import Vehicle
from dishub_monitor.services import statistics
from dishub_monitor.services.auth_seed import SUPER_ADMIN_ROLE
from dishub_monitor.services.scans import scan_stats


# Wednesday; the current week starts Monday 2026-03-09.
NOW = datetime(2026, 3, 11, 10, 0)


def _scan(db, user, plate: str, at: datetime, location: str = "Medan") -> None:
    db.add(
        Scan(
            plate_number=plate,
            vehicle_type="Mobil",
            color="Hitam",
            owner_name=f"Owner {plate}",
            tax_status="Aktif",
            scan_time=at,
            location=location,
            user_id=user.id,
        )
    )


def _seed_scans(db, operator, admin) -> None:
    _scan(db, operator, "BK 1 AA", datetime(2026, 3, 9, 0, 0))
    _scan(db, operator, "BK 1 AA", datetime(2026, 3, 8, 23, 59, 59), location="Unknown")
    _scan(db, operator, "BK 1 AA", datetime(2026, 3, 10, 12, 0))
    _scan(db, admin, "BK 2 BB", datetime(2026, 3, 11, 9, 30))
    _scan(db, operator, "BK 3 CC", datetime(2026, 3, 11, 9, 45), location="Binjai")
    _scan(db, operator, "BK 2 BB", datetime(2026, 3, 1, 0, 0))
    _scan(db, admin, "BK 1 AA", datetime(2026, 2, 28, 23, 0), location="Unknown")
    _scan(db, operator, "BK 4 DD", datetime(2025, 10, 1, 0, 0))
    _scan(db, operator, "BK 4 DD", datetime(2025, 9, 30, 23, 59))
    db.commit()


def _seed_vehicles(db) -> None:
    rows = (
        ("BK 10 AA", "Mobil", "Aktif", True),
        ("BK 11 AA", "Mobil", "Aktif", True),
        ("BK 12 AA", "Motor", "Mati", True),
        ("BK 13 AA", "Truk", "Aktif", False),
    )
    for plate, kind, status, active in rows:
        db.add(
            Vehicle(
                plate_number=plate,
                vehicle_type=kind,
                color="Putih",
                owner_name="Siti",
                tax_status=status,
                is_active=active,
            )
        )
    db.commit()


def test_dashboard_series_use_half_open_buckets(db, operator, admin):
    _seed_scans(db, operator, admin)
    _seed_vehicles(db)

    data = statistics.dashboard(db, now=NOW)
    assert data["totalVehicles"] == 3
    assert data["taxActive"] == 2
    assert data["taxInactive"] == 1
    assert data["complianceRate"] == 67
    assert data["scansToday"] == 2
    assert data["totalScans"] == 9

    trends = data["trends"]
    assert trends["weekly"] == [
        {"day": "Mon", "count": 1},
        {"day": "Tue", "count": 1},
        {"day": "Wed", "count": 2},
        {"day": "Thu", "count": 0},
        {"day": "Fri", "count": 0},
        {"day": "Sat", "count": 0},
        {"day": "Sun", "count": 0},
    ]
    assert trends["taxStatus"] == [{"name": "Lunas", "value": 2}, {"name": "Belum Lunas", "value": 1}]
    assert trends["monthly"] == [
        {"month": "Oct 2025", "count": 1},
        {"month": "Nov 2025", "count": 0},
        {"month": "Dec 2025", "count": 0},
        {"month": "Jan 2026", "count": 0},
        {"month": "Feb 2026", "count": 1},
        {"month": "Mar 2026", "count": 6},
    ]


def test_scan_stats_weekly_series(db, operator, admin):
    _seed_scans(db, operator, admin)

    stats = scan_stats(db, now=NOW)
    assert stats["totalScans"] == 9
    assert stats["scansToday"] == 2
    assert stats["uniqueVehiclesScanned"] == 4
    assert [d["count"] for d in stats["weeklyTrend"]] == [1, 1, 2, 0, 0, 0, 0]
    assert stats["weeklyTrend"][0] == {"day": "Mon", "count": 1, "date": "2026-03-09"}
    assert stats["weeklyTrend"][-1]["date"] == "2026-03-15"


def test_vehicle_type_percentages_skip_inactive(db):
    _seed_vehicles(db)
    assert statistics.vehicle_types(db) == [
        {"type": "Mobil", "count": 2, "percentage": 67},
        {"type": "Motor", "count": 1, "percentage": 33},
    ]


def test_vehicle_types_empty_registry(db):
    assert statistics.vehicle_types(db) == []


def test_weekly_trends(db, operator, admin):
    _seed_scans(db, operator, admin)

    weeks = statistics.weekly_trends(db, now=NOW)
    assert [w["week"] for w in weeks] == ["Week 1", "Week 2", "Week 3", "Week 4"]
    assert (weeks[0]["startDate"], weeks[0]["endDate"]) == ("16 Feb", "22 Feb")
    assert (weeks[3]["startDate"], weeks[3]["endDate"]) == ("09 Mar", "15 Mar")
    assert [w["scans"] for w in weeks] == [0, 2, 1, 4]
    assert [w["uniqueVehicles"] for w in weeks] == [0, 2, 1, 3]
    assert [w["avgScansPerDay"] for w in weeks] == [0, 0, 0, 1]


def test_activity_heatmap_grid(db, operator, admin):
    _seed_scans(db, operator, admin)

    heatmap = statistics.activity_heatmap(db, now=NOW)
    grid = heatmap["heatmapData"]
    assert len(grid) == 30
    assert all(len(day["hours"]) == 24 for day in grid)
    assert grid[0]["date"] == "2026-02-10"
    assert grid[0]["total"] == 0
    assert grid[0]["hours"] == [0] * 24
    assert grid[-1] == {
        "date": "2026-03-11",
        "day": "11",
        "weekday": "Wed",
        "hours": [0] * 9 + [2] + [0] * 14,
        "total": 2,
    }
    by_date = {day["date"]: day for day in grid}
    assert by_date["2026-03-08"]["hours"][23] == 1
    assert by_date["2026-03-01"]["hours"][0] == 1
    assert by_date["2026-03-05"]["total"] == 0

    assert heatmap["totalScans"] == 7
    assert len(heatmap["hourlyStats"]) == 24
    assert heatmap["hourlyStats"][12] == {"hour": "12:00", "count": 1, "percentage": 14}
    # Hours 00, 09 and 23 all have two scans.
    assert heatmap["peakHour"] == {"hour": "00:00", "count": 2, "percentage": 29}


def test_activity_heatmap_without_scans(db):
    heatmap = statistics.activity_heatmap(db, now=NOW)
    assert heatmap["totalScans"] == 0
    assert sum(day["total"] for day in heatmap["heatmapData"]) == 0
    assert heatmap["peakHour"] == {"hour": "00:00", "count": 0, "percentage": 0}


def test_location_stats_labels_unknown(db, operator, admin):
    _seed_scans(db, operator, admin)
    assert statistics.location_stats(db) == [
        {"location": "Medan", "count": 6, "percentage": 67},
        {"location": "Tidak Diketahui", "count": 2, "percentage": 22},
        {"location": "Binjai", "count": 1, "percentage": 11},
    ]


def test_user_activity_ranks_active_users(db, operator, admin, viewer):
    _seed_scans(db, operator, admin)
    viewer.is_active = False
    db.commit()

    data = statistics.user_activity(db)
    assert data["totalActiveUsers"] == 2
    assert data["topUsers"] == [
        {"id": operator.id, "username": "operator", "name": "Operator", "role": "Operator", "scansCount": 7},
        {"id": admin.id, "username": "admin", "name": "Admin", "role": SUPER_ADMIN_ROLE, "scansCount": 2},
    ]


def test_user_activity_includes_users_without_scans(db, operator, admin):
    data = statistics.user_activity(db)
    assert [(u["username"], u["scansCount"]) for u in data["topUsers"]] == [("admin", 0), ("operator", 0)]


def test_export_stats_last_thirty_days(db, operator):
    rows = (
        ("Harian", "excel", "completed", NOW - timedelta(days=1)),
        ("Gagal", "excel", "failed", NOW - timedelta(days=2)),
        ("Bulanan", "pdf", "completed", NOW - timedelta(days=29)),
        ("Lama", "pdf", "completed", NOW - timedelta(days=31)),
    )
    for title, fmt, status, created in rows:
        db.add(
            Report(
                title=title,
                start_date=datetime(2026, 2, 1),
                end_date=datetime(2026, 2, 28),
                file_format=fmt,
                status=status,
                generated_by=operator.id,
                created_at=created,
            )
        )
    db.commit()

    stats = statistics.export_stats(db, now=NOW)
    assert stats["totalReports"] == 3
    assert stats["successfulReports"] == 2
    assert stats["formatStats"] == [
        {"format": "EXCEL", "total": 2, "successful": 1, "successRate": 50},
        {"format": "PDF", "total": 1, "successful": 1, "successRate": 100},
    ]
    assert [r["title"] for r in stats["recentReports"]] == ["Harian", "Gagal", "Bulanan"]
    assert stats["recentReports"][0]["format"] == "EXCEL"
    assert stats["recentReports"][0]["createdAt"] == NOW - timedelta(days=1)
