"""Pagination helpers with hard caps."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import Any

from fastapi import Query


DEFAULT_PAGE_SIZE = 10
DEFAULT_MAX_PAGE_SIZE = 100


def get_max_page_size() -> int:
    raw = os.getenv("API_MAX_PAGE_SIZE", str(DEFAULT_MAX_PAGE_SIZE))
    try:
        val = int(raw)
    except Exception:
        val = DEFAULT_MAX_PAGE_SIZE
    if val < 1:
        return DEFAULT_MAX_PAGE_SIZE
    return val


def clamp_limit(limit: int) -> int:
    max_size = get_max_page_size()
    if limit < 1:
        return 1
    return min(limit, max_size)


@dataclass(frozen=True)
class PageParams:
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1),
) -> PageParams:
    return PageParams(page=page, limit=clamp_limit(limit))


def paginate(query, params: PageParams) -> tuple[list, int]:
    """Run ``query`` for one page; total and rows share the same criteria."""
    total = query.order_by(None).count()
    rows = query.offset(params.skip).limit(params.limit).all()
    return rows, total


def page_envelope(data: list[Any], *, total: int, params: PageParams) -> dict:
    return {
        "data": data,
        "pagination": {
            "page": params.page,
            "limit": params.limit,
            "total": total,
            "pages": math.ceil(total / params.limit) if params.limit else 0,
        },
    }
