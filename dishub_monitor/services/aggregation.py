"""
Counting primitives used by the statistics, scan and activity services.

Every helper issues live queries against the session it is given; there
is no caching. Sub-counts of one response run as separate statements in
the same session, so under concurrent writes they may observe slightly
different states (read committed).

Time buckets are half-open ``[start, end)`` and contiguous. Series always
contain one entry per bucket, including zero counts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
import math
from typing import Any, Optional

from sqlalchemy import and_, distinct, func, or_
from sqlalchemy.orm import Session

from ..core.timeutil import (
    WEEKDAY_LABELS,
    add_months,
    month_label,
    start_of_day,
    start_of_week,
)
from ..models.vehicle import TAX_ACTIVE, Vehicle


COMPLIANCE_WINDOW = timedelta(days=30)

COMPLIANT = "compliant"
EXPIRING_SOON = "expiring_soon"
EXPIRED = "expired"


@dataclass(frozen=True)
class Bucket:
    label: str
    start: datetime
    end: datetime


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(numerator: int, denominator: int) -> int:
    if not denominator:
        return 0
    return round_half_up(numerator / denominator * 100)


def count_where(db: Session, model, *criteria) -> int:
    return db.query(func.count(model.id)).filter(*criteria).scalar() or 0


def distinct_count(db: Session, column, *criteria) -> int:
    return db.query(func.count(distinct(column))).filter(*criteria).scalar() or 0


def grouped_count(db: Session, column, *criteria, limit: Optional[int] = None) -> list[tuple[Any, int]]:
    """``(key, count)`` pairs, most frequent first, ties broken by key."""
    count_col = func.count()
    query = (
        db.query(column, count_col)
        .select_from(column.class_)
        .filter(*criteria)
        .group_by(column)
        .order_by(count_col.desc(), column.asc())
    )
    if limit is not None:
        query = query.limit(limit)
    return [(key, int(count)) for key, count in query.all()]


def top_n(db: Session, column, n: int, *criteria) -> list[tuple[Any, int]]:
    return grouped_count(db, column, *criteria, limit=max(0, n))


def hour_buckets(day: datetime) -> list[Bucket]:
    start = start_of_day(day)
    return [
        Bucket(f"{hour:02d}:00", start + timedelta(hours=hour), start + timedelta(hours=hour + 1))
        for hour in range(24)
    ]


def day_buckets(start: datetime, days: int) -> list[Bucket]:
    first = start_of_day(start)
    out = []
    for offset in range(days):
        day_start = first + timedelta(days=offset)
        out.append(Bucket(WEEKDAY_LABELS[day_start.weekday()], day_start, day_start + timedelta(days=1)))
    return out


def week_buckets(now: datetime, weeks: int) -> list[Bucket]:
    """The last ``weeks`` Monday-based weeks, oldest first, ending with the current one."""
    current = start_of_week(now)
    out = []
    for index in range(weeks):
        start = current - timedelta(weeks=weeks - 1 - index)
        out.append(Bucket(f"Week {index + 1}", start, start + timedelta(weeks=1)))
    return out


def month_buckets(now: datetime, months: int) -> list[Bucket]:
    """The last ``months`` calendar months, oldest first, ending with the current one."""
    out = []
    for back in range(months - 1, -1, -1):
        start = add_months(now, -back)
        out.append(Bucket(month_label(start), start, add_months(start, 1)))
    return out


def count_series(db: Session, column, buckets: list[Bucket], *criteria) -> list[int]:
    """One range count per bucket, in bucket order."""
    out = []
    for bucket in buckets:
        count = (
            db.query(func.count())
            .select_from(column.class_)
            .filter(column >= bucket.start, column < bucket.end, *criteria)
            .scalar()
        )
        out.append(int(count or 0))
    return out


def classify_compliance(tax_status: str, expiry: Optional[datetime], now: datetime) -> str:
    """Place a vehicle in exactly one compliance class.

    Expiry exactly at ``now`` counts as expired; exactly at ``now + 30 days``
    counts as expiring soon.
    """
    if tax_status != TAX_ACTIVE or (expiry is not None and expiry <= now):
        return EXPIRED
    if expiry is not None and expiry <= now + COMPLIANCE_WINDOW:
        return EXPIRING_SOON
    return COMPLIANT


def compliance_criteria(now: datetime) -> dict[str, Any]:
    """SQL counterparts of ``classify_compliance`` keyed by class name."""
    horizon = now + COMPLIANCE_WINDOW
    expiry = Vehicle.tax_expiry_date
    return {
        EXPIRED: or_(
            Vehicle.tax_status != TAX_ACTIVE,
            and_(expiry.isnot(None), expiry <= now),
        ),
        EXPIRING_SOON: and_(
            Vehicle.tax_status == TAX_ACTIVE,
            expiry.isnot(None),
            expiry > now,
            expiry <= horizon,
        ),
        COMPLIANT: and_(
            Vehicle.tax_status == TAX_ACTIVE,
            or_(expiry.is_(None), expiry > horizon),
        ),
    }
