"""
Query-parameter to predicate translation.

``build_filter`` turns the loose query-string bag of a list endpoint into a
small tree of predicate values without touching the database.
``compile_predicate`` is the only place that knows how those values map
onto SQLAlchemy criteria, including dotted paths across relationships
(``user.name``, ``scans.scan_time``).

Text search is case-insensitive on every backend: both sides are lowered
and ``%``/``_`` in the term are escaped.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
import logging
from typing import Any, Mapping, Optional, Union

from sqlalchemy import and_, false, func, or_, true

from ..core.timeutil import (
    add_months,
    end_of_day,
    now_local,
    parse_date_param,
    start_of_day,
    start_of_month,
    start_of_week,
)


logger = logging.getLogger("filters")


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any


@dataclass(frozen=True)
class Contains:
    field: str
    term: str


@dataclass(frozen=True)
class Range:
    """Inclusive on both ends; a missing bound is open."""

    field: str
    start: Optional[datetime] = None
    end: Optional[datetime] = None


@dataclass(frozen=True)
class AnyOf:
    predicates: tuple = ()


@dataclass(frozen=True)
class AllOf:
    predicates: tuple = ()


Predicate = Union[Equals, Contains, Range, AnyOf, AllOf]

MATCH_ALL = AllOf(())


@dataclass(frozen=True)
class EntityFields:
    search: tuple[str, ...]
    equals: tuple[tuple[str, str], ...]
    date_field: Optional[str] = None


ENTITY_FIELDS: dict[str, EntityFields] = {
    "vehicle": EntityFields(
        search=("plate_number", "owner_name", "color"),
        equals=(("taxStatus", "tax_status"), ("vehicleType", "vehicle_type"), ("type", "vehicle_type")),
        date_field="scans.scan_time",
    ),
    "scan": EntityFields(
        search=("plate_number", "owner_name", "location"),
        equals=(
            ("taxStatus", "tax_status"),
            ("vehicleType", "vehicle_type"),
            ("userId", "user_id"),
            ("location", "location"),
        ),
        date_field="scan_time",
    ),
    "activity": EntityFields(
        search=("user.name", "user.username", "action", "ip_address", "details"),
        equals=(("status", "status"), ("action", "action"), ("userId", "user_id")),
        date_field="timestamp",
    ),
    "user": EntityFields(
        search=("name", "username", "email"),
        equals=(("roleId", "role_id"),),
    ),
}

NAMED_WINDOWS = ("today", "week", "month")


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def named_window(name: str, now: Optional[datetime] = None) -> Optional[tuple[datetime, datetime]]:
    """Inclusive ``(start, end)`` of today, this ISO week or this month."""
    now = now or now_local()
    if name == "today":
        return start_of_day(now), end_of_day(now)
    if name == "week":
        start = start_of_week(now)
        return start, start + timedelta(days=7) - timedelta(microseconds=1)
    if name == "month":
        start = start_of_month(now)
        return start, add_months(now, 1) - timedelta(microseconds=1)
    return None


def date_window(
    params: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> Optional[tuple[Optional[datetime], Optional[datetime]]]:
    named = _clean(params.get("filter"))
    if named in NAMED_WINDOWS:
        return named_window(named, now)

    start_raw = _clean(params.get("startDate"))
    end_raw = _clean(params.get("endDate"))
    start = parse_date_param(start_raw)
    end = parse_date_param(end_raw, inclusive_end=True)
    if start_raw and start is None:
        logger.warning("Ignoring malformed startDate=%s", start_raw)
    if end_raw and end is None:
        logger.warning("Ignoring malformed endDate=%s", end_raw)
    if start is None and end is None:
        return None
    return start, end


def build_filter(
    entity_kind: str,
    params: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> Predicate:
    fields = ENTITY_FIELDS.get(entity_kind)
    if fields is None:
        logger.warning("No filter fields registered for entity kind=%s", entity_kind)
        return MATCH_ALL

    parts: list[Predicate] = []
    search = _clean(params.get("search"))
    if search:
        parts.append(AnyOf(tuple(Contains(name, search) for name in fields.search)))
    for param, column in fields.equals:
        value = _clean(params.get(param))
        if value is not None:
            parts.append(Equals(column, value))
    if fields.date_field:
        window = date_window(params, now)
        if window:
            parts.append(Range(fields.date_field, window[0], window[1]))
    return AllOf(tuple(parts))


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _leaf(column, predicate: Predicate):
    if isinstance(predicate, Equals):
        return column == predicate.value
    if isinstance(predicate, Contains):
        pattern = f"%{_escape_like(predicate.term.lower())}%"
        return func.lower(column).like(pattern, escape="\\")
    if isinstance(predicate, Range):
        bounds = []
        if predicate.start is not None:
            bounds.append(column >= predicate.start)
        if predicate.end is not None:
            bounds.append(column <= predicate.end)
        return and_(true(), *bounds)
    raise TypeError(f"Unsupported predicate: {predicate!r}")


def compile_predicate(model, predicate: Predicate):
    """Translate a predicate tree into a SQLAlchemy criterion for ``model``."""
    if isinstance(predicate, AllOf):
        return and_(true(), *(compile_predicate(model, p) for p in predicate.predicates))
    if isinstance(predicate, AnyOf):
        if not predicate.predicates:
            return false()
        return or_(*(compile_predicate(model, p) for p in predicate.predicates))

    head, _, rest = predicate.field.partition(".")
    attr = getattr(model, head)
    if not rest:
        return _leaf(attr, predicate)
    target = attr.property.mapper.class_
    inner = compile_predicate(target, replace(predicate, field=rest))
    if attr.property.uselist:
        return attr.any(inner)
    return attr.has(inner)
