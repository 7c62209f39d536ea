"""
Audit trail: best-effort recording, listing, statistics and CSV export.
"""

from __future__ import annotations

from datetime import datetime, timedelta
import logging
from typing import Any, Mapping, Optional

from sqlalchemy import distinct
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.errors import log_exception
from ..core.pagination import PageParams, page_envelope, paginate
from ..core.timeutil import now_local, start_of_day
from ..models.activity_log import SYSTEM_USER_ID, ActivityLog
from ..models.user import User
from ..schemas.report import ActivityLogOut
from .aggregation import count_series, count_where, grouped_count, hour_buckets, percentage
from .exporters import write_activity_csv
from .filters import build_filter, compile_predicate


_logger = logging.getLogger("activity")

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"
EXPORT_ROW_LIMIT = 10000

SORT_FIELDS = {
    "timestamp": ActivityLog.timestamp,
    "action": ActivityLog.action,
    "status": ActivityLog.status,
    "userId": ActivityLog.user_id,
    "ipAddress": ActivityLog.ip_address,
}


def record_activity(
    db: Session,
    *,
    action: str,
    user_id: Optional[str],
    status: str = STATUS_SUCCESS,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    details: Optional[str] = None,
) -> Optional[ActivityLog]:
    """Append an audit row; failures are logged and never raised."""
    entry = ActivityLog(
        action=action,
        user_id=user_id or SYSTEM_USER_ID,
        status=status,
        ip_address=ip_address,
        user_agent=user_agent,
        details=details,
    )
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        log_exception(_logger, "Activity log write failed", extra={"action": action}, exc=exc)
        return None
    return entry


def _serialize(log: ActivityLog) -> dict:
    return ActivityLogOut.model_validate(log).dump()


def _base_query(db: Session):
    return db.query(ActivityLog).options(joinedload(ActivityLog.user))


def list_logs(
    db: Session,
    *,
    params: Mapping[str, Any],
    page: PageParams,
    now: Optional[datetime] = None,
) -> dict:
    predicate = build_filter("activity", params, now=now)
    column = SORT_FIELDS.get(params.get("sortBy") or "timestamp", ActivityLog.timestamp)
    order = column.asc() if (params.get("sortOrder") or "desc").lower() == "asc" else column.desc()
    query = _base_query(db).filter(compile_predicate(ActivityLog, predicate)).order_by(order, ActivityLog.id.asc())
    rows, total = paginate(query, page)
    return page_envelope([_serialize(r) for r in rows], total=total, params=page)


def recent_logs(db: Session, *, limit: int = 20) -> list[dict]:
    rows = _base_query(db).order_by(ActivityLog.timestamp.desc()).limit(limit).all()
    return [_serialize(r) for r in rows]


def logs_for_user(db: Session, user_id: str, *, limit: int = 50) -> list[dict]:
    rows = (
        _base_query(db)
        .filter(ActivityLog.user_id == user_id)
        .order_by(ActivityLog.timestamp.desc())
        .limit(limit)
        .all()
    )
    return [_serialize(r) for r in rows]


def failed_logs(db: Session, *, now: Optional[datetime] = None, limit: int = 50) -> list[dict]:
    now = now or now_local()
    rows = (
        _base_query(db)
        .filter(ActivityLog.status == STATUS_FAILED, ActivityLog.timestamp >= now - timedelta(hours=24))
        .order_by(ActivityLog.timestamp.desc())
        .limit(limit)
        .all()
    )
    return [_serialize(r) for r in rows]


def system_logs(db: Session, *, now: Optional[datetime] = None, limit: int = 100) -> list[dict]:
    now = now or now_local()
    rows = (
        db.query(ActivityLog)
        .filter(ActivityLog.user_id == SYSTEM_USER_ID, ActivityLog.timestamp >= now - timedelta(days=7))
        .order_by(ActivityLog.timestamp.desc())
        .limit(limit)
        .all()
    )
    return [_serialize(r) for r in rows]


def distinct_actions(db: Session) -> list[str]:
    rows = db.query(distinct(ActivityLog.action)).order_by(ActivityLog.action.asc()).all()
    return [action for (action,) in rows]


def activity_stats(db: Session, *, now: Optional[datetime] = None) -> dict:
    now = now or now_local()
    today = start_of_day(now)

    total = count_where(db, ActivityLog)
    today_count = count_where(db, ActivityLog, ActivityLog.timestamp >= today)
    success = count_where(db, ActivityLog, ActivityLog.status == STATUS_SUCCESS)
    failed = count_where(db, ActivityLog, ActivityLog.status == STATUS_FAILED)

    actions = grouped_count(db, ActivityLog.action, limit=10)
    buckets = hour_buckets(now)
    hourly = count_series(db, ActivityLog.timestamp, buckets)

    top = grouped_count(db, ActivityLog.user_id, ActivityLog.user_id != SYSTEM_USER_ID, limit=10)
    users = {
        u.id: u
        for u in db.query(User).filter(User.id.in_([user_id for user_id, _ in top])).all()
    } if top else {}
    top_users = []
    for user_id, count in top:
        user = users.get(user_id)
        top_users.append(
            {
                "userId": user_id,
                "count": count,
                "user": {"id": user.id, "username": user.username, "name": user.name} if user else None,
            }
        )

    return {
        "totalActivities": total,
        "todayActivities": today_count,
        "successfulActivities": success,
        "failedActivities": failed,
        "successRate": percentage(success, total),
        "actionDistribution": [{"action": action, "count": count} for action, count in actions],
        "hourlyActivity": [
            {"hour": hour, "label": bucket.label, "count": count}
            for hour, (bucket, count) in enumerate(zip(buckets, hourly))
        ],
        "topUsers": top_users,
    }


def export_logs_csv(
    db: Session,
    *,
    params: Mapping[str, Any],
    now: Optional[datetime] = None,
    limit: int = EXPORT_ROW_LIMIT,
) -> str:
    predicate = build_filter("activity", params, now=now)
    rows = (
        _base_query(db)
        .filter(compile_predicate(ActivityLog, predicate))
        .order_by(ActivityLog.timestamp.desc())
        .limit(limit)
        .all()
    )
    _logger.info("Exporting activity logs rows=%s", len(rows))
    return write_activity_csv(rows)
