import csv
from datetime import datetime, timedelta
import io

from sqlalchemy.exc import SQLAlchemyError

from dishub_monitor.core.pagination import PageParams
from dishub_monitor.models.activity_log import ActivityLog
from dishub_monitor.services import activity as activity_service


NOW = datetime(2026, 3, 11, 10, 0)


def _log(db, *, action: str, user_id: str, status: str = "success", at: datetime = NOW, **extra) -> None:
    db.add(ActivityLog(action=action, user_id=user_id, status=status, timestamp=at, **extra))
    db.commit()


def test_record_activity_defaults_to_system_user(db):
    entry = activity_service.record_activity(db, action="Export Activity Logs", user_id=None, ip_address="N/A")
    assert entry is not None
    assert entry.user_id == "system"
    assert entry.status == "success"
    assert [r["action"] for r in activity_service.system_logs(db)] == ["Export Activity Logs"]


def test_record_activity_never_raises(db, monkeypatch):
    def failing_commit():
        raise SQLAlchemyError("database is locked")

    monkeypatch.setattr(db, "commit", failing_commit)
    assert activity_service.record_activity(db, action="Login", user_id="someone") is None


def test_stats_and_windows(db, operator, admin):
    _log(db, action="Login", user_id=operator.id, at=NOW - timedelta(hours=1))
    _log(db, action="Login", user_id=operator.id, status="failed", at=NOW - timedelta(hours=2))
    _log(db, action="Scan Vehicle", user_id=operator.id, at=NOW - timedelta(hours=3))
    _log(db, action="Login", user_id=admin.id, status="failed", at=NOW - timedelta(days=2))

    stats = activity_service.activity_stats(db, now=NOW)
    assert stats["totalActivities"] == 4
    assert stats["todayActivities"] == 3
    assert stats["successfulActivities"] == 2
    assert stats["failedActivities"] == 2
    assert stats["successRate"] == 50
    assert stats["actionDistribution"][0] == {"action": "Login", "count": 3}
    assert len(stats["hourlyActivity"]) == 24
    assert stats["hourlyActivity"][9]["count"] == 1
    assert stats["topUsers"][0]["userId"] == operator.id
    assert stats["topUsers"][0]["count"] == 3

    failed = activity_service.failed_logs(db, now=NOW)
    assert [r["userId"] for r in failed] == [operator.id]
    assert activity_service.distinct_actions(db) == ["Login", "Scan Vehicle"]
    assert len(activity_service.logs_for_user(db, admin.id)) == 1


def test_list_logs_filters(db, operator, admin):
    _log(db, action="Login", user_id=operator.id, at=NOW - timedelta(days=1))
    _log(db, action="Scan Vehicle", user_id=operator.id, at=NOW)
    _log(db, action="Login", user_id=admin.id, status="failed", at=NOW)

    page = activity_service.list_logs(db, params={"status": "failed"}, page=PageParams())
    assert [r["userId"] for r in page["data"]] == [admin.id]
    assert page["data"][0]["user"]["username"] == "admin"

    page = activity_service.list_logs(db, params={"search": "operator", "filter": "today"}, page=PageParams(), now=NOW)
    assert [r["action"] for r in page["data"]] == ["Scan Vehicle"]
    assert page["pagination"]["total"] == 1


def test_list_logs_sorting(db, operator):
    _log(db, action="Scan Vehicle", user_id=operator.id, at=NOW - timedelta(hours=2))
    _log(db, action="Delete Scan", user_id=operator.id, at=NOW)
    _log(db, action="Login", user_id=operator.id, at=NOW - timedelta(hours=1))

    default = activity_service.list_logs(db, params={}, page=PageParams())
    assert [r["action"] for r in default["data"]] == ["Delete Scan", "Login", "Scan Vehicle"]

    by_action = activity_service.list_logs(db, params={"sortBy": "action", "sortOrder": "asc"}, page=PageParams())
    assert [r["action"] for r in by_action["data"]] == ["Delete Scan", "Login", "Scan Vehicle"]

    oldest_first = activity_service.list_logs(
        db, params={"sortBy": "timestamp", "sortOrder": "asc"}, page=PageParams()
    )
    assert [r["action"] for r in oldest_first["data"]] == ["Scan Vehicle", "Login", "Delete Scan"]

    unknown = activity_service.list_logs(db, params={"sortBy": "password"}, page=PageParams())
    assert [r["action"] for r in unknown["data"]] == ["Delete Scan", "Login", "Scan Vehicle"]


def test_csv_export_includes_user_agent(db, operator):
    _log(db, action="Login", user_id=operator.id, ip_address="10.1.1.1", user_agent="Mozilla/5.0", details="ok")
    _log(db, action="Export Activity Logs", user_id="system", at=NOW - timedelta(minutes=1))

    content = activity_service.export_logs_csv(db, params={})
    rows = list(csv.reader(io.StringIO(content)))
    assert rows[0] == [
        "Timestamp",
        "User",
        "Username",
        "Role",
        "Action",
        "Status",
        "IP Address",
        "User Agent",
        "Details",
    ]
    assert rows[1] == [
        "2026-03-11 10:00:00",
        "Operator",
        "operator",
        "Operator",
        "Login",
        "success",
        "10.1.1.1",
        "Mozilla/5.0",
        "ok",
    ]
    assert rows[2][1:4] == ["System", "system", "System"]
    assert rows[2][6:8] == ["N/A", "N/A"]
