from datetime import datetime

from dishub_monitor.models.activity_log import ActivityLog
from dishub_monitor.models.vehicle import Vehicle
from dishub_monitor.services.filters import (
    MATCH_ALL,
    AllOf,
    AnyOf,
    Contains,
    Equals,
    Range,
    build_filter,
    compile_predicate,
    named_window,
)


NOW = datetime(2026, 3, 11, 15, 30)  # a Wednesday


def _vehicle(plate: str, owner: str = "Owner", status: str = "Aktif") -> Vehicle:
    return Vehicle(
        plate_number=plate,
        vehicle_type="Mobil",
        color="Hitam",
        owner_name=owner,
        tax_status=status,
        is_active=True,
    )


def test_empty_params_match_everything():
    assert build_filter("vehicle", {}) == MATCH_ALL
    assert build_filter("unknown-kind", {"search": "x"}) == MATCH_ALL


def test_search_and_equality_fields():
    predicate = build_filter("vehicle", {"search": " bk 12 ", "taxStatus": "Aktif", "vehicleType": ""})
    assert predicate == AllOf(
        (
            AnyOf(
                (
                    Contains("plate_number", "bk 12"),
                    Contains("owner_name", "bk 12"),
                    Contains("color", "bk 12"),
                )
            ),
            Equals("tax_status", "Aktif"),
        )
    )


def test_named_filter_overrides_explicit_dates():
    predicate = build_filter(
        "scan",
        {"filter": "today", "startDate": "2020-01-01", "endDate": "2020-01-31"},
        now=NOW,
    )
    assert predicate == AllOf(
        (Range("scan_time", datetime(2026, 3, 11), datetime(2026, 3, 11, 23, 59, 59, 999999)),)
    )


def test_date_only_end_is_inclusive_and_malformed_bound_is_dropped():
    predicate = build_filter("scan", {"startDate": "not-a-date", "endDate": "2026-03-05"}, now=NOW)
    assert predicate == AllOf((Range("scan_time", None, datetime(2026, 3, 5, 23, 59, 59, 999999)),))

    predicate = build_filter("scan", {"startDate": "garbage", "endDate": "also-garbage"}, now=NOW)
    assert predicate == MATCH_ALL


def test_named_windows():
    start, end = named_window("week", NOW)
    assert start == datetime(2026, 3, 9)
    assert end == datetime(2026, 3, 15, 23, 59, 59, 999999)

    start, end = named_window("month", NOW)
    assert start == datetime(2026, 3, 1)
    assert end == datetime(2026, 3, 31, 23, 59, 59, 999999)

    assert named_window("decade", NOW) is None


def test_search_is_case_insensitive_and_escapes_wildcards(db):
    db.add_all([_vehicle("AB_1"), _vehicle("ABX1"), _vehicle("ZZ 9", owner="Budi")])
    db.commit()

    def plates(params):
        criterion = compile_predicate(Vehicle, build_filter("vehicle", params))
        return sorted(v.plate_number for v in db.query(Vehicle).filter(criterion).all())

    assert plates({"search": "ab"}) == ["AB_1", "ABX1"]
    assert plates({"search": "b_"}) == ["AB_1"]
    assert plates({"search": "BUDI"}) == ["ZZ 9"]
    assert plates({"search": "%"}) == []


def test_dotted_path_searches_related_user(db, operator):
    db.add_all(
        [
            ActivityLog(action="Login", user_id=operator.id, status="success"),
            ActivityLog(action="Login", user_id="system", status="success"),
        ]
    )
    db.commit()

    criterion = compile_predicate(ActivityLog, build_filter("activity", {"search": "OPERATOR"}))
    rows = db.query(ActivityLog).filter(criterion).all()
    assert [r.user_id for r in rows] == [operator.id]
