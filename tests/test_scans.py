from datetime import datetime, timedelta
import json

import pytest

from dishub_monitor.core.errors import NotFoundError
from dishub_monitor.core.pagination import PageParams
from dishub_monitor.models.activity_log import ActivityLog
from dishub_monitor.models.scan import Scan
from dishub_monitor.models.vehicle import Vehicle
from dishub_monitor.schemas.scan import ScanCreate
from dishub_monitor.services import scans as scan_service
from dishub_monitor.services import statistics


def _add_scan(db, user, plate: str, scan_time: datetime, location: str = "Medan") -> Scan:
    scan = Scan(
        plate_number=plate,
        vehicle_type="Motor",
        color="Merah",
        owner_name="Owner",
        tax_status="Aktif",
        scan_time=scan_time,
        location=location,
        user_id=user.id,
    )
    db.add(scan)
    db.commit()
    return scan


def test_scan_of_unknown_plate_creates_vehicle_with_defaults(db, operator):
    payload = ScanCreate(plateNumber="BK 9999 ZZ", vehicleType="Motor", color="Merah")
    result = scan_service.create_scan(db, payload, user_id=operator.id, ip_address="10.0.0.5", user_agent="pytest")

    vehicle = db.query(Vehicle).filter(Vehicle.plate_number == "BK 9999 ZZ").one()
    assert vehicle.owner_name == "Unknown"
    assert vehicle.tax_status == "Mati"
    assert vehicle.is_active is True

    assert result["vehicleId"] == vehicle.id
    assert result["ownerName"] == "Unknown"
    assert result["taxStatus"] == "Mati"
    assert result["location"] == "Unknown"
    assert result["vehicle"]["plateNumber"] == "BK 9999 ZZ"

    log = db.query(ActivityLog).one()
    assert log.action == "Scan Vehicle"
    assert log.user_id == operator.id
    assert log.status == "success"
    assert log.ip_address == "10.0.0.5"
    assert "BK 9999 ZZ" in log.details


def test_scan_of_known_plate_merges_only_provided_fields(db, operator):
    db.add(
        Vehicle(
            plate_number="BK 1111 AA",
            vehicle_type="Mobil",
            color="Hitam",
            owner_name="Budi Santoso",
            tax_status="Mati",
            is_active=True,
        )
    )
    db.commit()

    payload = ScanCreate(
        plateNumber="BK 1111 AA",
        vehicleType="Mobil",
        color="Putih",
        taxStatus="Aktif",
        location="Jl. Gatot Subroto",
        metadata={"camera": "CAM-02", "confidence": 0.93},
    )
    result = scan_service.create_scan(db, payload, user_id=operator.id)

    vehicle = db.query(Vehicle).filter(Vehicle.plate_number == "BK 1111 AA").one()
    assert vehicle.owner_name == "Budi Santoso"
    assert vehicle.color == "Putih"
    assert vehicle.tax_status == "Aktif"
    assert db.query(Vehicle).count() == 1

    assert result["ownerName"] == "Budi Santoso"
    assert result["color"] == "Putih"
    assert result["taxStatus"] == "Aktif"
    assert json.loads(result["details"]) == {"camera": "CAM-02", "confidence": 0.93}


def test_scan_history_defaults_to_today(db, operator):
    now = datetime(2026, 3, 11, 14, 0)
    _add_scan(db, operator, "BK 1", now - timedelta(hours=2))
    _add_scan(db, operator, "BK 2", now - timedelta(days=1))
    _add_scan(db, operator, "BK 3", now - timedelta(days=3))

    today = scan_service.scan_history(db, window=None, page=PageParams(), now=now)
    assert [s["plateNumber"] for s in today["data"]] == ["BK 1"]
    assert today["period"]["filter"] == "today"

    week = scan_service.scan_history(db, window="week", page=PageParams(), now=now)
    assert [s["plateNumber"] for s in week["data"]] == ["BK 1", "BK 2"]

    unknown = scan_service.scan_history(db, window="forever", page=PageParams(), now=now)
    assert unknown["period"]["filter"] == "today"


def test_list_scans_filters_by_location_and_search(db, operator):
    now = datetime(2026, 3, 11, 14, 0)
    _add_scan(db, operator, "BK 10 A", now, location="Medan")
    _add_scan(db, operator, "BK 20 B", now - timedelta(minutes=5), location="Binjai")

    by_location = scan_service.list_scans(db, params={"location": "Binjai"}, page=PageParams())
    assert [s["plateNumber"] for s in by_location["data"]] == ["BK 20 B"]

    searched = scan_service.list_scans(db, params={"search": "bk 10"}, page=PageParams())
    assert [s["plateNumber"] for s in searched["data"]] == ["BK 10 A"]
    assert searched["data"][0]["user"]["username"] == operator.username


def test_top_vehicles_and_locations(db, operator):
    now = datetime(2026, 3, 11, 14, 0)
    for plate, location in (("BK 2", "Medan"), ("BK 1", "Medan"), ("BK 2", "Unknown"), ("BK 1", "Binjai"), ("BK 3", "Medan")):
        _add_scan(db, operator, plate, now, location=location)

    assert scan_service.top_vehicles(db, limit=2) == [
        {"plateNumber": "BK 1", "count": 2},
        {"plateNumber": "BK 2", "count": 2},
    ]
    locations = statistics.location_stats(db)
    assert locations[0] == {"location": "Medan", "count": 3, "percentage": 60}
    assert {"location": "Tidak Diketahui", "count": 1, "percentage": 20} in locations


def test_delete_scan_records_activity(db, operator, admin):
    scan_id = _add_scan(db, operator, "BK 77", datetime(2026, 3, 11, 9, 0)).id
    result = scan_service.delete_scan(db, scan_id, user_id=admin.id, ip_address="127.0.0.1")
    assert result == {"message": "Scan deleted successfully"}
    assert db.query(Scan).count() == 0

    log = db.query(ActivityLog).one()
    assert log.action == "Delete Scan"
    assert log.user_id == admin.id

    with pytest.raises(NotFoundError):
        scan_service.delete_scan(db, scan_id, user_id=admin.id)
